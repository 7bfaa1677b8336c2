# backend/vetperto/services/slots/calendar.py
"""
Month calendar of a professional: one status per day.

  blocked      → blocked date, 0 slots
  unavailable  → no windows that weekday, or every slot booked
  partial      → some slots booked
  available    → nothing booked yet

total slots = Σ floor((end − start) / slot_duration) over the weekday's windows
booked      = pending + confirmed appointments of the day
"""

from calendar import monthrange
from collections import Counter
from datetime import date, timedelta
from typing import NamedTuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.tables import Appointments, Availability, BlockedDates
from .availability import ACTIVE_STATUSES
from .config import SchedulingConfig, get_scheduling_config, time_str_to_minutes, weekday_name


class DayStatus(NamedTuple):
    date: date
    status: str
    slots_count: int
    total_slots: int
    booked_slots: int
    selectable: bool


def calendar_range(start_date: date, months_ahead: int) -> tuple[date, date]:
    """First day of start_date's month → last day of the month months_ahead later."""
    first = start_date.replace(day=1)
    month_index = first.month - 1 + months_ahead
    year = first.year + month_index // 12
    month = month_index % 12 + 1
    last = date(year, month, monthrange(year, month)[1])
    return first, last


def calculate_calendar(
    db: Session,
    professional_id: int,
    start_date: date,
    months_ahead: int | None = None,
    config: SchedulingConfig | None = None,
    today: date | None = None,
) -> list[DayStatus]:
    config = config or get_scheduling_config()
    today = today or date.today()
    if months_ahead is None:
        months_ahead = config.months_ahead

    first, last = calendar_range(start_date, months_ahead)
    horizon_end = today + timedelta(days=config.horizon_days)

    totals = _weekday_totals(db, professional_id, config)
    blocked = _blocked_dates(db, professional_id, first, last)
    booked = _booked_counts(db, professional_id, first, last)

    days = []
    current = first
    while current <= last:
        iso = current.isoformat()
        if iso in blocked:
            status, total, booked_count, available = "blocked", 0, 0, 0
        else:
            total = totals.get(weekday_name(current), 0)
            booked_count = booked.get(iso, 0)
            available = max(total - booked_count, 0)
            if total == 0 or available == 0:
                status = "unavailable"
            elif booked_count > 0:
                status = "partial"
            else:
                status = "available"

        selectable = (
            today <= current <= horizon_end
            and status in ("available", "partial")
        )
        days.append(DayStatus(current, status, available, total, booked_count, selectable))
        current += timedelta(days=1)

    return days


def _weekday_totals(db: Session, professional_id: int, config: SchedulingConfig) -> dict[str, int]:
    windows = (
        db.query(Availability)
        .filter(Availability.profile_id == professional_id)
        .all()
    )
    totals: Counter = Counter()
    for window in windows:
        step = window.slot_duration_minutes or config.default_slot_minutes
        span = time_str_to_minutes(window.end_time) - time_str_to_minutes(window.start_time)
        if span > 0:
            totals[window.day_of_week] += span // step
    return dict(totals)


def _blocked_dates(db: Session, professional_id: int, first: date, last: date) -> set[str]:
    rows = (
        db.query(BlockedDates.blocked_date)
        .filter(
            BlockedDates.profile_id == professional_id,
            BlockedDates.blocked_date >= first.isoformat(),
            BlockedDates.blocked_date <= last.isoformat(),
        )
        .all()
    )
    return {row[0] for row in rows}


def _booked_counts(db: Session, professional_id: int, first: date, last: date) -> dict[str, int]:
    rows = (
        db.query(Appointments.appointment_date, func.count(Appointments.id))
        .filter(
            Appointments.professional_profile_id == professional_id,
            Appointments.appointment_date >= first.isoformat(),
            Appointments.appointment_date <= last.isoformat(),
            Appointments.status.in_(ACTIVE_STATUSES),
        )
        .group_by(Appointments.appointment_date)
        .all()
    )
    return {day: count for day, count in rows}
