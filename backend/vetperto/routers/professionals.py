# backend/vetperto/routers/professionals.py
"""
Public professional pages.

GET /professionals/{id}/calendar - day statuses for the booking calendar
GET /professionals/{id}/slots    - bookable times of a day for a service
"""

from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.tables import Profiles
from ..redis_client import get_redis
from ..schemas.accounts import PublicProfileRead
from ..schemas.catalog import ServiceRead
from ..schemas.reviews import RatingRead, ReviewRead
from ..schemas.slots import CalendarDay, CalendarResponse, DaySlotsResponse
from ..services.appointments import PROFESSIONAL_TYPES, get_bookable_service
from ..services.catalog import list_services
from ..services.reviews import get_rating, list_public_reviews
from ..services.slots import calculate_calendar, get_available_slots, get_scheduling_config

router = APIRouter(prefix="/professionals", tags=["professionals"])


def _get_public_professional(db: Session, id: int) -> Profiles:
    obj = db.get(Profiles, id)
    if not obj or obj.user_type not in PROFESSIONAL_TYPES or not obj.is_active:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.get("/{id}", response_model=PublicProfileRead)
def get_professional(id: int, db: Session = Depends(get_db)):
    return _get_public_professional(db, id)


@router.get("/{id}/services", response_model=list[ServiceRead])
def get_professional_services(id: int, db: Session = Depends(get_db)):
    _get_public_professional(db, id)
    return list_services(db, id)


@router.get("/{id}/reviews", response_model=list[ReviewRead])
def get_professional_reviews(id: int, db: Session = Depends(get_db)):
    _get_public_professional(db, id)
    return list_public_reviews(db, id)


@router.get("/{id}/rating", response_model=RatingRead)
def get_professional_rating(id: int, db: Session = Depends(get_db)):
    _get_public_professional(db, id)
    return get_rating(db, id)


@router.get("/{id}/calendar", response_model=CalendarResponse)
def get_professional_calendar(
    id: int,
    start_date: date | None = None,
    months_ahead: int | None = Query(None, ge=0, le=12),
    db: Session = Depends(get_db),
):
    """Per-day availability status from start_date's month on."""
    _get_public_professional(db, id)
    config = get_scheduling_config()

    days = calculate_calendar(db, id, start_date or date.today(), months_ahead, config)

    return CalendarResponse(
        professional_id=id,
        start_date=days[0].date,
        end_date=days[-1].date,
        horizon_days=config.horizon_days,
        days=[CalendarDay(**day._asdict()) for day in days],
    )


@router.get("/{id}/slots", response_model=DaySlotsResponse)
def get_professional_slots(
    id: int,
    target_date: date = Query(..., alias="date"),
    service_id: int | None = None,
    duration_minutes: int | None = Query(None, gt=0, le=24 * 60),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    """Bookable times of a day for a service (or an explicit duration)."""
    _get_public_professional(db, id)
    if not service_id and not duration_minutes:
        raise HTTPException(status_code=400, detail="service_id or duration_minutes required")

    config = get_scheduling_config()
    today = date.today()
    max_date = today + timedelta(days=config.horizon_days)

    if target_date < today:
        raise HTTPException(status_code=400, detail="Date cannot be in the past")

    if target_date > max_date:
        raise HTTPException(status_code=400, detail=f"Date cannot be more than {config.horizon_days} days ahead")

    if service_id:
        duration_minutes = get_bookable_service(db, id, service_id).duration_minutes

    slots = get_available_slots(db, id, target_date, duration_minutes, config=config, redis=redis)

    return DaySlotsResponse(
        professional_id=id,
        date=target_date,
        duration_minutes=duration_minutes,
        slots=[slot._asdict() for slot in slots],
    )
