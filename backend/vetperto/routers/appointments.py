# backend/vetperto/routers/appointments.py
# Creation goes through /booking/sessions.

from datetime import date
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_current_profile, is_admin
from ..models.tables import Appointments, Profiles
from ..schemas.appointments import AppointmentRead, StatusUpdate
from ..services import appointments as service

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=list[AppointmentRead])
def list_appointments(
    request: Request,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """The caller's appointments, as tutor or as professional."""
    client_type = request.state.client_type

    if client_type == "tutor":
        return service.list_for_tutor(db, profile.id, status)

    if client_type in ("professional", "company"):
        return service.list_for_professional(db, profile.id, status, date_from, date_to)

    query = db.query(Appointments)
    if status:
        query = query.filter(Appointments.status == status)
    if date_from:
        query = query.filter(Appointments.appointment_date >= date_from.isoformat())
    if date_to:
        query = query.filter(Appointments.appointment_date <= date_to.isoformat())
    return query.order_by(Appointments.appointment_date, Appointments.start_time).all()


@router.get("/{id}", response_model=AppointmentRead)
def get_appointment(
    id: int,
    request: Request,
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return service.get_for_participant(db, id, profile.id, is_admin(request))


@router.post("/{id}/status", response_model=AppointmentRead)
def change_status(
    id: int,
    data: StatusUpdate,
    request: Request,
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return service.update_status(
        db,
        id,
        profile.id,
        data.status,
        reason=data.reason,
        professional_notes=data.professional_notes,
        is_admin=is_admin(request),
    )
