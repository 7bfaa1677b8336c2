# backend/vetperto/services/slots/calculator.py
"""
Level 1: Base cell calculation for a professional's day.

Produces one Cell per slot_duration_minutes piece of every weekly
availability window that applies to the date:

  Cell(start "HH:MM", end "HH:MM", location_type, expire_ts)

expire_ts = (cell_datetime − min_advance).timestamp()
Redis filters with ZRANGEBYSCORE {now_ts} +inf, so dead cells drop out
automatically.

Contains:
✓ weekly availability windows of the professional
✓ blocked dates (the whole day disappears)
✓ min_advance_minutes (baked into expire_ts)

Does NOT contain:
✗ Appointments (checked at Level 2)
✗ Wizard holds (checked at Level 2)
✗ Service duration (checked at Level 2)
"""

from datetime import date, datetime, timedelta
from typing import NamedTuple

from sqlalchemy.orm import Session

from ...models.tables import Availability, BlockedDates, Profiles
from .config import (
    SchedulingConfig,
    get_scheduling_config,
    minutes_to_time_str,
    time_str_to_minutes,
    weekday_name,
)


class Cell(NamedTuple):
    start: str
    end: str
    location_type: str
    expire_ts: float

    @property
    def member(self) -> str:
        return f"{self.start}-{self.end}@{self.location_type}"


def parse_member(member: str, expire_ts: float) -> Cell:
    """Inverse of Cell.member: "09:00-09:30@clinic" → Cell."""
    interval, location_type = member.split("@", 1)
    start, end = interval.split("-", 1)
    return Cell(start, end, location_type, expire_ts)


def calculate_day_cells(
    db: Session,
    professional_id: int,
    target_date: date,
    config: SchedulingConfig | None = None,
    now: datetime | None = None,
) -> list[Cell]:
    """
    Calculate base cells for a professional on a specific date.

    Returns:
        Cells sorted by start time. Empty list = nothing bookable.
    """
    config = config or get_scheduling_config()
    now = now or datetime.now()
    now_ts = now.timestamp()

    professional = db.get(Profiles, professional_id)
    if not professional or not professional.is_active:
        return []

    if is_date_blocked(db, professional_id, target_date):
        return []

    windows = get_day_windows(db, professional_id, target_date)
    if not windows:
        return []

    day_start = datetime.combine(target_date, datetime.min.time())
    lead = timedelta(minutes=config.min_advance_minutes)

    cells: dict[str, Cell] = {}
    for window in windows:
        step = window.slot_duration_minutes or config.default_slot_minutes
        start_min = time_str_to_minutes(window.start_time)
        end_min = time_str_to_minutes(window.end_time)

        t = start_min
        while t + step <= end_min:
            start_str = minutes_to_time_str(t)
            # overlapping windows: the earliest window owns the cell
            if start_str not in cells:
                expire_ts = (day_start + timedelta(minutes=t) - lead).timestamp()
                if expire_ts > now_ts:
                    cells[start_str] = Cell(
                        start_str,
                        minutes_to_time_str(t + step),
                        window.location_type,
                        expire_ts,
                    )
            t += step

    return [cells[k] for k in sorted(cells)]


# ── Helpers ──────────────────────────────────────────────────────────────


def get_day_windows(db: Session, professional_id: int, target_date: date) -> list[Availability]:
    """Weekly windows for the weekday of target_date."""
    return (
        db.query(Availability)
        .filter(
            Availability.profile_id == professional_id,
            Availability.day_of_week == weekday_name(target_date),
        )
        .order_by(Availability.start_time, Availability.id)
        .all()
    )


def is_date_blocked(db: Session, professional_id: int, target_date: date) -> bool:
    return (
        db.query(BlockedDates.id)
        .filter(
            BlockedDates.profile_id == professional_id,
            BlockedDates.blocked_date == target_date.isoformat(),
        )
        .first()
        is not None
    )
