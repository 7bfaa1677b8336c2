# backend/vetperto/routers/booking.py
"""
Booking wizard API.

POST   /booking/sessions                  start (step 1)
POST   /booking/sessions/{sid}/service    choose service → step 2
POST   /booking/sessions/{sid}/date       choose date, returns the day's slots
POST   /booking/sessions/{sid}/slot       hold a slot → step 3
POST   /booking/sessions/{sid}/details    pet, location, notes
POST   /booking/sessions/{sid}/back       previous step
POST   /booking/sessions/{sid}/submit     create the appointment (idempotent)
DELETE /booking/sessions/{sid}            release the hold and drop the session
"""

from fastapi import APIRouter, Depends, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_tutor
from ..models.tables import Profiles
from ..redis_client import get_redis
from ..schemas.appointments import AppointmentRead
from ..schemas.booking import (
    WizardDateResponse,
    WizardDateStep,
    WizardDetailsStep,
    WizardServiceStep,
    WizardSlotStep,
    WizardStart,
    WizardState,
)
from ..schemas.slots import TimeSlotRead
from ..services.booking_wizard import BookingWizard

router = APIRouter(prefix="/booking/sessions", tags=["booking"])


def get_wizard(
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
) -> BookingWizard:
    return BookingWizard(db, redis)


@router.post("", response_model=WizardState, status_code=status.HTTP_201_CREATED)
def start_booking(
    data: WizardStart,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return wizard.start(tutor.id, data.professional_id)


@router.get("/{sid}", response_model=WizardState)
def get_booking(
    sid: str,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return wizard.load(sid, tutor.id)


@router.post("/{sid}/service", response_model=WizardState)
def choose_service(
    sid: str,
    data: WizardServiceStep,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return wizard.select_service(sid, tutor.id, data.service_id)


@router.post("/{sid}/date", response_model=WizardDateResponse)
def choose_date(
    sid: str,
    data: WizardDateStep,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    state, slots = wizard.select_date(sid, tutor.id, data.date)
    return {"state": state, "slots": [slot._asdict() for slot in slots]}


@router.get("/{sid}/slots", response_model=list[TimeSlotRead])
def list_slots(
    sid: str,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return [slot._asdict() for slot in wizard.available_slots(sid, tutor.id)]


@router.post("/{sid}/slot", response_model=WizardState)
def choose_slot(
    sid: str,
    data: WizardSlotStep,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return wizard.select_slot(sid, tutor.id, data.slot_start)


@router.post("/{sid}/details", response_model=WizardState)
def set_details(
    sid: str,
    data: WizardDetailsStep,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return wizard.set_details(sid, tutor.id, **data.model_dump(exclude_unset=True))


@router.post("/{sid}/back", response_model=WizardState)
def go_back(
    sid: str,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return wizard.back(sid, tutor.id)


@router.post("/{sid}/submit", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def submit_booking(
    sid: str,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    return wizard.submit(sid, tutor.id)


@router.delete("/{sid}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_booking(
    sid: str,
    tutor: Profiles = Depends(require_tutor),
    wizard: BookingWizard = Depends(get_wizard),
):
    wizard.cancel(sid, tutor.id)
