# backend/vetperto/services/slots/availability.py
"""
Level 2: Bookable slots for a given duration.

A cell start t is bookable for duration d when the chain of contiguous
cells beginning at t covers [t, t + d), the chain agrees on a location
type, and [t, t + d) overlaps neither an active appointment nor a cell
held by another wizard session.

Takes into account:
- Base cells (Level 1, cached in Redis Sorted Set)
- Pending / confirmed appointments of the professional
- Wizard holds (when Redis is available)
"""

from datetime import date, datetime
from typing import NamedTuple

from redis import Redis
from sqlalchemy.orm import Session

from ...models.tables import Appointments
from .calculator import Cell, calculate_day_cells
from .config import SchedulingConfig, get_scheduling_config, minutes_to_time_str, time_str_to_minutes
from .holds import held_cells
from .redis_store import SlotsRedisStore

ACTIVE_STATUSES = ("pending", "confirmed")


class TimeSlot(NamedTuple):
    slot_start: str
    slot_end: str
    location_type: str
    cells: tuple[str, ...]


def get_available_slots(
    db: Session,
    professional_id: int,
    target_date: date,
    duration_minutes: int,
    config: SchedulingConfig | None = None,
    redis: Redis | None = None,
    now: datetime | None = None,
    hold_owner: str | None = None,
) -> list[TimeSlot]:
    """
    Bookable slots of duration_minutes for a professional on a date.

    hold_owner: cells held by this wizard session do not count as taken.
    """
    if duration_minutes <= 0:
        return []

    config = config or get_scheduling_config()
    now = now or datetime.now()

    cells = get_day_cells(db, professional_id, target_date, config, now, redis)
    if not cells:
        return []

    booked = _get_booked_intervals(db, professional_id, target_date)
    held = (
        held_cells(redis, professional_id, target_date, exclude_owner=hold_owner)
        if redis is not None
        else set()
    )

    by_start = {cell.start: cell for cell in cells}
    slots = []
    for cell in cells:
        slot = _build_slot(cell, by_start, duration_minutes)
        if slot is None:
            continue
        if _overlaps_any(slot, booked):
            continue
        if held and any(start in held for start in slot.cells):
            continue
        slots.append(slot)

    return slots


def find_slot(
    db: Session,
    professional_id: int,
    target_date: date,
    start_time: str,
    duration_minutes: int,
    **kwargs,
) -> TimeSlot | None:
    """The bookable slot that starts at start_time, if any."""
    for slot in get_available_slots(db, professional_id, target_date, duration_minutes, **kwargs):
        if slot.slot_start == start_time:
            return slot
    return None


def is_slot_available(
    db: Session,
    professional_id: int,
    target_date: date,
    start_time: str,
    end_time: str,
    config: SchedulingConfig | None = None,
    redis: Redis | None = None,
    now: datetime | None = None,
    hold_owner: str | None = None,
) -> bool:
    """
    Check a single [start_time, end_time) interval.

    Holds are only considered when hold_owner is given.
    """
    duration = time_str_to_minutes(end_time) - time_str_to_minutes(start_time)
    slot = find_slot(
        db,
        professional_id,
        target_date,
        start_time,
        duration,
        config=config,
        redis=redis if hold_owner else None,
        now=now,
        hold_owner=hold_owner,
    )
    return slot is not None


# ── Base cells (Level 1 with cache) ──────────────────────────────────────


def get_day_cells(
    db: Session,
    professional_id: int,
    target_date: date,
    config: SchedulingConfig,
    now: datetime,
    redis: Redis | None,
) -> list[Cell]:
    """Get base cells, using the Redis cache when available."""
    if redis is not None:
        store = SlotsRedisStore(redis, config)
        cached = store.get_live_cells(professional_id, target_date, now)
        if cached is not None:
            return cached

        # Cache miss: calculate and store
        cells = calculate_day_cells(db, professional_id, target_date, config, now)
        store.store_day_cells(professional_id, target_date, cells)
        return cells

    return calculate_day_cells(db, professional_id, target_date, config, now)


# ── Helpers ──────────────────────────────────────────────────────────────


def merge_location(a: str, b: str) -> str | None:
    """Location type both cells can serve, or None when incompatible."""
    if a == b:
        return a
    if a == "both":
        return b
    if b == "both":
        return a
    return None


def _build_slot(first: Cell, by_start: dict[str, Cell], duration: int) -> TimeSlot | None:
    start_min = time_str_to_minutes(first.start)
    target_end = start_min + duration
    if target_end > 24 * 60:
        return None

    location = first.location_type
    chain = [first.start]
    covered = time_str_to_minutes(first.end)

    while covered < target_end:
        nxt = by_start.get(minutes_to_time_str(covered))
        if nxt is None:
            return None
        location = merge_location(location, nxt.location_type)
        if location is None:
            return None
        chain.append(nxt.start)
        covered = time_str_to_minutes(nxt.end)

    return TimeSlot(first.start, minutes_to_time_str(target_end), location, tuple(chain))


def _overlaps_any(slot: TimeSlot, intervals: list[tuple[int, int]]) -> bool:
    start = time_str_to_minutes(slot.slot_start)
    end = time_str_to_minutes(slot.slot_end)
    return any(start < b_end and b_start < end for b_start, b_end in intervals)


def _get_booked_intervals(db: Session, professional_id: int, target_date: date) -> list[tuple[int, int]]:
    """(start_min, end_min) of active appointments on date."""
    rows = (
        db.query(Appointments.start_time, Appointments.end_time)
        .filter(
            Appointments.professional_profile_id == professional_id,
            Appointments.appointment_date == target_date.isoformat(),
            Appointments.status.in_(ACTIVE_STATUSES),
        )
        .all()
    )
    return [(time_str_to_minutes(s), time_str_to_minutes(e)) for s, e in rows]
