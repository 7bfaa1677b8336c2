# backend/vetperto/schemas/catalog.py

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

LocationType = Literal["clinic", "home_visit", "both"]
DayOfWeek = Literal["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
TIME_PATTERN = r"^([01]\d|2[0-4]):[0-5]\d(:[0-5]\d)?$"


# ── Services ─────────────────────────────────────────────────────────────

class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    duration_minutes: int = Field(30, gt=0, le=24 * 60)
    price: Optional[float] = Field(None, ge=0)
    location_type: LocationType = "clinic"


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    price: Optional[float] = Field(None, ge=0)
    location_type: Optional[LocationType] = None
    is_active: Optional[bool] = None


class ServiceRead(BaseModel):
    id: int
    profile_id: int
    name: str
    description: Optional[str] = None
    duration_minutes: int
    price: Optional[float] = None
    location_type: str
    is_active: bool

    model_config = {"from_attributes": True}


# ── Weekly availability ──────────────────────────────────────────────────

class AvailabilityCreate(BaseModel):
    day_of_week: DayOfWeek
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    location_type: LocationType = "clinic"
    is_available_for_shift: bool = False
    slot_duration_minutes: Literal[15, 30, 45, 60, 90] = 30


class AvailabilityUpdate(BaseModel):
    day_of_week: Optional[DayOfWeek] = None
    start_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    location_type: Optional[LocationType] = None
    is_available_for_shift: Optional[bool] = None
    slot_duration_minutes: Optional[Literal[15, 30, 45, 60, 90]] = None


class AvailabilityRead(BaseModel):
    id: int
    profile_id: int
    day_of_week: str
    start_time: str
    end_time: str
    location_type: str
    is_available_for_shift: bool
    slot_duration_minutes: int

    model_config = {"from_attributes": True}


# ── Blocked dates ────────────────────────────────────────────────────────

class BlockedDatesCreate(BaseModel):
    dates: list[date] = Field(min_length=1)
    reason: Optional[str] = None


class BlockedDateRead(BaseModel):
    id: int
    profile_id: int
    blocked_date: date
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
