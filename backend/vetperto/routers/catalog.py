# backend/vetperto/routers/catalog.py
# Professional's own catalog. DELETE /me/services/{id} = soft-delete (is_active)

from datetime import date
from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_professional
from ..models.tables import Profiles
from ..redis_client import get_redis
from ..schemas.catalog import (
    AvailabilityCreate,
    AvailabilityRead,
    AvailabilityUpdate,
    BlockedDateRead,
    BlockedDatesCreate,
    ServiceCreate,
    ServiceRead,
    ServiceUpdate,
)
from ..services import catalog

router = APIRouter(prefix="/me", tags=["catalog"])


# ── Services ─────────────────────────────────────────────────────────────

@router.get("/services", response_model=list[ServiceRead])
def list_my_services(
    include_inactive: bool = False,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return catalog.list_services(db, profile.id, include_inactive)


@router.post("/services", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
def create_my_service(
    data: ServiceCreate,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return catalog.create_service(db, profile.id, data.model_dump())


@router.patch("/services/{id}", response_model=ServiceRead)
def update_my_service(
    id: int,
    data: ServiceUpdate,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return catalog.update_service(db, profile.id, id, data.model_dump(exclude_unset=True))


@router.delete("/services/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_service(
    id: int,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    catalog.deactivate_service(db, profile.id, id)


# ── Weekly availability ──────────────────────────────────────────────────

@router.get("/availability", response_model=list[AvailabilityRead])
def list_my_availability(
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return catalog.list_availability(db, profile.id)


@router.post("/availability", response_model=AvailabilityRead, status_code=status.HTTP_201_CREATED)
def create_my_availability(
    data: AvailabilityCreate,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    return catalog.add_availability(db, redis, profile.id, data.model_dump())


@router.patch("/availability/{id}", response_model=AvailabilityRead)
def update_my_availability(
    id: int,
    data: AvailabilityUpdate,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    return catalog.update_availability(db, redis, profile.id, id, data.model_dump(exclude_unset=True))


@router.delete("/availability/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_availability(
    id: int,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    catalog.remove_availability(db, redis, profile.id, id)


# ── Blocked dates ────────────────────────────────────────────────────────

@router.get("/blocked-dates", response_model=list[BlockedDateRead])
def list_my_blocked_dates(
    date_from: date | None = None,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return catalog.list_blocked_dates(db, profile.id, date_from)


@router.post("/blocked-dates", response_model=list[BlockedDateRead], status_code=status.HTTP_201_CREATED)
def create_my_blocked_dates(
    data: BlockedDatesCreate,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    return catalog.add_blocked_dates(db, redis, profile.id, data.dates, data.reason)


@router.delete("/blocked-dates/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_blocked_date(
    id: int,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    catalog.remove_blocked_date(db, redis, profile.id, id)
