# backend/vetperto/services/slots/config.py
"""
Scheduling configuration and time helpers for slots calculation.
"""

from dataclasses import dataclass
from functools import lru_cache

ALLOWED_SLOT_DURATIONS = (15, 30, 45, 60, 90)

# Python weekday() index → day_of_week enum value
WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Configuration for the scheduling system.

    Attributes:
        horizon_days: How many days ahead dates can be booked
        min_advance_minutes: Minimum lead time before a cell can be booked
        default_slot_minutes: Slot length used when a window has none
        months_ahead: Calendar range shown to tutors
        hold_ttl_seconds: Lifetime of a wizard slot hold
        wizard_ttl_seconds: Lifetime of an idle wizard session
        cache_ttl_seconds: Upper bound for Level 1 cache keys
    """
    horizon_days: int = 180
    min_advance_minutes: int = 120
    default_slot_minutes: int = 30
    months_ahead: int = 6
    hold_ttl_seconds: int = 600
    wizard_ttl_seconds: int = 1800
    cache_ttl_seconds: int = 86400

    def __post_init__(self):
        if self.default_slot_minutes not in ALLOWED_SLOT_DURATIONS:
            raise ValueError(
                f"default_slot_minutes must be one of {ALLOWED_SLOT_DURATIONS}, "
                f"got {self.default_slot_minutes}"
            )
        if self.horizon_days <= 0:
            raise ValueError("horizon_days must be positive")


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    """Scheduling configuration (singleton)."""
    return SchedulingConfig()


def time_str_to_minutes(value: str) -> int:
    """ "09:30" → 570. Accepts "HH:MM:SS" as well. """
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 24 and 0 <= minute < 60) or (hour == 24 and minute):
        raise ValueError(f"Invalid time: {value!r}")
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """570 → "09:30". 1440 is rendered as "24:00"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """ "9:00:00" → "09:00" """
    return minutes_to_time_str(time_str_to_minutes(value))


def weekday_name(target_date) -> str:
    return WEEKDAY_NAMES[target_date.weekday()]
