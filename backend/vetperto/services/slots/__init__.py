# backend/vetperto/services/slots/__init__.py
"""
Slots calculation module.

Level 1: Base cells per professional and day (cached in Redis Sorted Sets)
Level 2: Bookable slots for a duration (calculated on-the-fly)
Calendar: per-day status over a month range
"""

from .config import SchedulingConfig, get_scheduling_config
from .calculator import Cell, calculate_day_cells
from .redis_store import SlotsRedisStore
from .invalidator import invalidate_professional_cache
from .availability import TimeSlot, get_available_slots, is_slot_available, find_slot
from .calendar import DayStatus, calculate_calendar

__all__ = [
    "SchedulingConfig",
    "get_scheduling_config",
    "Cell",
    "calculate_day_cells",
    "SlotsRedisStore",
    "invalidate_professional_cache",
    "TimeSlot",
    "get_available_slots",
    "is_slot_available",
    "find_slot",
    "DayStatus",
    "calculate_calendar",
]
