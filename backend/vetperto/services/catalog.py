# backend/vetperto/services/catalog.py
"""
Professional catalog: services, weekly availability and blocked dates.

Availability and blocked date changes invalidate the Level 1 slot cache.
"""

import logging
from datetime import date

from redis import Redis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound, ValidationFailed
from ..models.tables import Availability, BlockedDates, Services
from .slots.config import ALLOWED_SLOT_DURATIONS, WEEKDAY_NAMES, normalize_time, time_str_to_minutes
from .slots.invalidator import invalidate_professional_cache

logger = logging.getLogger(__name__)

LOCATION_TYPES = ("clinic", "home_visit", "both")


# ── Services ─────────────────────────────────────────────────────────────


def list_services(db: Session, professional_id: int, include_inactive: bool = False) -> list[Services]:
    query = db.query(Services).filter(Services.profile_id == professional_id)
    if not include_inactive:
        query = query.filter(Services.is_active == 1)
    return query.order_by(Services.name, Services.id).all()


def _validate_service(data: dict) -> None:
    if "location_type" in data and data["location_type"] not in LOCATION_TYPES:
        raise ValidationFailed(f"Invalid location_type: {data['location_type']}")
    if "duration_minutes" in data and (data["duration_minutes"] or 0) <= 0:
        raise ValidationFailed("duration_minutes must be positive")
    if data.get("price") is not None and data["price"] < 0:
        raise ValidationFailed("price cannot be negative")


def create_service(db: Session, professional_id: int, data: dict) -> Services:
    _validate_service(data)
    obj = Services(profile_id=professional_id, **data)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def get_own_service(db: Session, professional_id: int, service_id: int) -> Services:
    obj = db.get(Services, service_id)
    if not obj or obj.profile_id != professional_id:
        raise NotFound("Service not found")
    return obj


def update_service(db: Session, professional_id: int, service_id: int, data: dict) -> Services:
    obj = get_own_service(db, professional_id, service_id)
    _validate_service(data)
    for key, value in data.items():
        setattr(obj, key, value)
    db.commit()
    db.refresh(obj)
    return obj


def deactivate_service(db: Session, professional_id: int, service_id: int) -> None:
    obj = get_own_service(db, professional_id, service_id)
    obj.is_active = 0
    db.commit()


# ── Weekly availability ──────────────────────────────────────────────────


def list_availability(db: Session, professional_id: int) -> list[Availability]:
    rows = db.query(Availability).filter(Availability.profile_id == professional_id).all()
    order = {name: i for i, name in enumerate(WEEKDAY_NAMES)}
    return sorted(rows, key=lambda a: (order.get(a.day_of_week, 7), a.start_time))


def _normalize_window(data: dict) -> dict:
    data = dict(data)
    if data.get("day_of_week") not in WEEKDAY_NAMES:
        raise ValidationFailed(f"Invalid day_of_week: {data.get('day_of_week')}")
    if data.get("location_type", "clinic") not in LOCATION_TYPES:
        raise ValidationFailed(f"Invalid location_type: {data.get('location_type')}")
    if data.get("slot_duration_minutes", 30) not in ALLOWED_SLOT_DURATIONS:
        raise ValidationFailed(f"slot_duration_minutes must be one of {ALLOWED_SLOT_DURATIONS}")

    try:
        data["start_time"] = normalize_time(data["start_time"])
        data["end_time"] = normalize_time(data["end_time"])
    except (KeyError, ValueError):
        raise ValidationFailed("start_time and end_time must be HH:MM") from None

    if time_str_to_minutes(data["start_time"]) >= time_str_to_minutes(data["end_time"]):
        raise ValidationFailed("start_time must be before end_time")

    if "is_available_for_shift" in data:
        data["is_available_for_shift"] = 1 if data["is_available_for_shift"] else 0
    return data


def add_availability(db: Session, redis: Redis, professional_id: int, data: dict) -> Availability:
    obj = Availability(profile_id=professional_id, **_normalize_window(data))
    db.add(obj)
    db.commit()
    db.refresh(obj)
    invalidate_professional_cache(redis, professional_id)
    return obj


def update_availability(db: Session, redis: Redis, professional_id: int, availability_id: int, data: dict) -> Availability:
    obj = db.get(Availability, availability_id)
    if not obj or obj.profile_id != professional_id:
        raise NotFound("Availability not found")

    merged = {
        "day_of_week": obj.day_of_week,
        "start_time": obj.start_time,
        "end_time": obj.end_time,
        "location_type": obj.location_type,
        "slot_duration_minutes": obj.slot_duration_minutes,
        "is_available_for_shift": obj.is_available_for_shift,
        **data,
    }
    for key, value in _normalize_window(merged).items():
        setattr(obj, key, value)
    db.commit()
    db.refresh(obj)
    invalidate_professional_cache(redis, professional_id)
    return obj


def remove_availability(db: Session, redis: Redis, professional_id: int, availability_id: int) -> None:
    obj = db.get(Availability, availability_id)
    if not obj or obj.profile_id != professional_id:
        raise NotFound("Availability not found")
    db.delete(obj)
    db.commit()
    invalidate_professional_cache(redis, professional_id)


# ── Blocked dates ────────────────────────────────────────────────────────


def list_blocked_dates(db: Session, professional_id: int, date_from: date | None = None) -> list[BlockedDates]:
    query = db.query(BlockedDates).filter(BlockedDates.profile_id == professional_id)
    if date_from:
        query = query.filter(BlockedDates.blocked_date >= date_from.isoformat())
    return query.order_by(BlockedDates.blocked_date).all()


def add_blocked_dates(
    db: Session,
    redis: Redis,
    professional_id: int,
    dates: list[date],
    reason: str | None = None,
    today: date | None = None,
) -> list[BlockedDates]:
    """Block one or many dates. The whole request fails if any date is invalid."""
    today = today or date.today()
    unique = sorted(set(dates))
    if not unique:
        raise ValidationFailed("No dates given")

    past = [d for d in unique if d < today]
    if past:
        raise ValidationFailed(f"Cannot block past dates: {', '.join(d.isoformat() for d in past)}")

    existing = {
        row[0]
        for row in db.query(BlockedDates.blocked_date)
        .filter(
            BlockedDates.profile_id == professional_id,
            BlockedDates.blocked_date.in_([d.isoformat() for d in unique]),
        )
        .all()
    }
    if existing:
        raise Conflict(f"Already blocked: {', '.join(sorted(existing))}", code="date_already_blocked")

    objs = [
        BlockedDates(profile_id=professional_id, blocked_date=d.isoformat(), reason=reason)
        for d in unique
    ]
    db.add_all(objs)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Date already blocked", code="date_already_blocked") from None

    for obj in objs:
        db.refresh(obj)
    invalidate_professional_cache(redis, professional_id, unique)
    logger.info(f"Blocked dates added: professional={professional_id} dates={[d.isoformat() for d in unique]}")
    return objs


def remove_blocked_date(db: Session, redis: Redis, professional_id: int, blocked_id: int) -> None:
    obj = db.get(BlockedDates, blocked_id)
    if not obj or obj.profile_id != professional_id:
        raise NotFound("Blocked date not found")
    blocked = date.fromisoformat(obj.blocked_date)
    db.delete(obj)
    db.commit()
    invalidate_professional_cache(redis, professional_id, [blocked])
