# backend/vetperto/schemas/booking.py

import datetime as dt
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .slots import TimeSlotRead


class WizardStart(BaseModel):
    professional_id: int


class WizardServiceStep(BaseModel):
    service_id: int


class WizardDateStep(BaseModel):
    date: dt.date


class WizardSlotStep(BaseModel):
    slot_start: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class WizardDetailsStep(BaseModel):
    pet_id: Optional[int] = None
    location_type: Optional[Literal["clinic", "home_visit"]] = None
    location_address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)


class CreditCheck(BaseModel):
    has_credits: bool
    remaining: int
    status: str


class WizardState(BaseModel):
    id: str
    step: int
    professional_id: int
    service_id: Optional[int] = None
    duration_minutes: Optional[int] = None
    date: Optional[dt.date] = None
    slot: Optional[TimeSlotRead] = None
    location_type: Optional[str] = None
    location_address: Optional[str] = None
    pet_id: Optional[int] = None
    notes: Optional[str] = None
    appointment_id: Optional[int] = None
    credits: CreditCheck


class WizardDateResponse(BaseModel):
    state: WizardState
    slots: list[TimeSlotRead]
