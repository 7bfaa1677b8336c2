# backend/vetperto/schemas/appointments.py

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class AppointmentRead(BaseModel):
    id: int
    tutor_profile_id: int
    professional_profile_id: int
    pet_id: Optional[int] = None
    service_id: Optional[int] = None

    appointment_date: date
    start_time: str
    end_time: str

    location_type: str
    location_address: Optional[str] = None

    status: str
    tutor_notes: Optional[str] = None
    professional_notes: Optional[str] = None
    price: Optional[float] = None

    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None

    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class StatusUpdate(BaseModel):
    status: Literal["confirmed", "cancelled", "completed", "no_show"]
    reason: Optional[str] = Field(None, max_length=500)
    professional_notes: Optional[str] = Field(None, max_length=2000)


class ConfirmRequest(BaseModel):
    action: Literal["confirm", "reschedule"] = "confirm"


class ConfirmResponse(BaseModel):
    status: Literal["confirmed", "reschedule_requested", "already_processed"]
    appointment_id: int
    appointment_status: str
