# backend/vetperto/services/appointments.py
"""
Appointment creation and lifecycle.

create_appointment_secure() is the only way an appointment row is born.
The checks run in the caller's session and the row, the credit
consumption and the professional's notification commit together. The
partial unique index on (professional, date, start_time) turns a lost
race into SlotUnavailable.

Lifecycle:
    pending   → confirmed | cancelled
    confirmed → completed | no_show | cancelled
"""

import logging
from datetime import date, datetime

from redis import Redis
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import (
    Conflict,
    NoCreditsAvailable,
    NotFound,
    PermissionDenied,
    PlanLimitReached,
    ProfessionalInactive,
    SlotUnavailable,
    ValidationFailed,
)
from ..models.tables import Appointments, Pets, Profiles, Services
from .credits import check_professional_credits, consume_credit, record_lost_appointment
from .events import emit_after_commit
from .notifications import notify
from .plans import can_accept_appointment
from .slots import SchedulingConfig, find_slot

logger = logging.getLogger(__name__)

PROFESSIONAL_TYPES = ("profissional", "empresa")
LOCATION_TYPES = ("clinic", "home_visit", "both")

TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("completed", "no_show", "cancelled"),
}


def resolve_location(slot_location: str, requested: str | None) -> str:
    """
    Location the appointment happens at.

    A "both" slot lets the tutor choose (clinic by default); otherwise the
    slot's own type is the only option.
    """
    if requested is not None and requested not in ("clinic", "home_visit"):
        raise ValidationFailed(f"Invalid location_type: {requested}")

    if slot_location == "both":
        return requested or "clinic"

    if requested is not None and requested != slot_location:
        raise ValidationFailed(f"This slot only accepts {slot_location}")
    return slot_location


def get_bookable_professional(db: Session, professional_id: int) -> Profiles:
    professional = db.get(Profiles, professional_id)
    if not professional or professional.user_type not in PROFESSIONAL_TYPES:
        raise NotFound("Professional not found")
    if not professional.is_active:
        raise ProfessionalInactive("Professional is not accepting appointments")
    return professional


def get_bookable_service(db: Session, professional_id: int, service_id: int) -> Services:
    service = db.get(Services, service_id)
    if not service or service.profile_id != professional_id or not service.is_active:
        raise NotFound("Service not found")
    return service


def get_owned_pet(db: Session, tutor_id: int, pet_id: int) -> Pets:
    pet = db.get(Pets, pet_id)
    if not pet or pet.tutor_profile_id != tutor_id:
        raise ValidationFailed("Pet not found for this tutor", code="invalid_pet")
    return pet


def create_appointment_secure(
    db: Session,
    tutor_id: int,
    professional_id: int,
    service_id: int,
    pet_id: int,
    appointment_date: date,
    start_time: str,
    location_type: str | None = None,
    location_address: str | None = None,
    tutor_notes: str | None = None,
    redis: Redis | None = None,
    hold_owner: str | None = None,
    config: SchedulingConfig | None = None,
    now: datetime | None = None,
) -> Appointments:
    professional = get_bookable_professional(db, professional_id)
    service = get_bookable_service(db, professional.id, service_id)
    get_owned_pet(db, tutor_id, pet_id)

    if not check_professional_credits(db, professional.id)["has_credits"]:
        record_lost_appointment(db, professional.id, tutor_id, service.id, appointment_date)
        raise NoCreditsAvailable("Professional has no credits available")

    quota = can_accept_appointment(db, professional.id, month=appointment_date)
    if not quota["can_accept"]:
        raise PlanLimitReached(
            f"Monthly appointment limit reached ({quota['limit']}) for plan {quota['plan_name']}"
        )

    slot = find_slot(
        db,
        professional.id,
        appointment_date,
        start_time,
        service.duration_minutes,
        config=config,
        redis=redis if hold_owner else None,
        now=now,
        hold_owner=hold_owner,
    )
    if slot is None:
        raise SlotUnavailable("Selected time is no longer available")

    location = resolve_location(slot.location_type, location_type)
    if location == "home_visit" and not (location_address or "").strip():
        raise ValidationFailed("Address is required for home visits", code="address_required")

    appointment = Appointments(
        tutor_profile_id=tutor_id,
        professional_profile_id=professional.id,
        pet_id=pet_id,
        service_id=service.id,
        appointment_date=appointment_date.isoformat(),
        start_time=slot.slot_start,
        end_time=slot.slot_end,
        location_type=location,
        location_address=location_address if location == "home_visit" else None,
        status="pending",
        tutor_notes=tutor_notes,
        price=service.price,
    )

    try:
        db.add(appointment)
        db.flush()
        consume_credit(db, professional.id)

        tutor = db.get(Profiles, tutor_id)
        notify(
            db,
            professional.id,
            "appointment_created",
            tutor.full_name if tutor else "",
            service.name,
            appointment.appointment_date,
            appointment.start_time,
            type="appointment",
            related_appointment_id=appointment.id,
        )
        emit_after_commit(
            db,
            "appointment_created",
            {"appointment_id": appointment.id, "professional_id": professional.id},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            f"Slot taken concurrently: professional={professional.id} "
            f"date={appointment_date} start={start_time}"
        )
        raise SlotUnavailable("Selected time is no longer available") from None

    db.refresh(appointment)
    logger.info(
        f"Appointment created: id={appointment.id} professional={professional.id} "
        f"tutor={tutor_id} {appointment.appointment_date} {appointment.start_time}"
    )
    return appointment


# ── Queries ──────────────────────────────────────────────────────────────


def list_for_tutor(db: Session, tutor_id: int, status: str | None = None) -> list[Appointments]:
    query = db.query(Appointments).filter(Appointments.tutor_profile_id == tutor_id)
    if status:
        query = query.filter(Appointments.status == status)
    return query.order_by(Appointments.appointment_date, Appointments.start_time).all()


def list_for_professional(
    db: Session,
    professional_id: int,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[Appointments]:
    query = db.query(Appointments).filter(Appointments.professional_profile_id == professional_id)
    if status:
        query = query.filter(Appointments.status == status)
    if date_from:
        query = query.filter(Appointments.appointment_date >= date_from.isoformat())
    if date_to:
        query = query.filter(Appointments.appointment_date <= date_to.isoformat())
    return query.order_by(Appointments.appointment_date, Appointments.start_time).all()


def get_for_participant(db: Session, appointment_id: int, profile_id: int, is_admin: bool = False) -> Appointments:
    appt = db.get(Appointments, appointment_id)
    if not appt:
        raise NotFound("Appointment not found")
    if not is_admin and profile_id not in (appt.tutor_profile_id, appt.professional_profile_id):
        raise PermissionDenied("Not a participant of this appointment")
    return appt


# ── Status transitions ───────────────────────────────────────────────────


def update_status(
    db: Session,
    appointment_id: int,
    actor_id: int,
    new_status: str,
    reason: str | None = None,
    professional_notes: str | None = None,
    is_admin: bool = False,
    now: datetime | None = None,
) -> Appointments:
    appt = get_for_participant(db, appointment_id, actor_id, is_admin)
    now = now or datetime.now()

    is_professional = actor_id == appt.professional_profile_id
    if not is_admin and not is_professional and new_status != "cancelled":
        raise PermissionDenied("Tutors can only cancel appointments")

    allowed = TRANSITIONS.get(appt.status, ())
    if new_status not in allowed:
        raise Conflict(
            f"Cannot change appointment from {appt.status} to {new_status}",
            code="invalid_transition",
        )

    stamp = now.isoformat(timespec="seconds")
    appt.status = new_status
    appt.updated_at = stamp
    if professional_notes is not None and (is_professional or is_admin):
        appt.professional_notes = professional_notes

    if new_status == "confirmed":
        appt.confirmed_at = stamp
    elif new_status == "cancelled":
        appt.cancelled_at = stamp
        appt.cancelled_by = actor_id
        appt.cancellation_reason = reason

    for profile_id in (appt.tutor_profile_id, appt.professional_profile_id):
        if profile_id == actor_id:
            continue
        notify(
            db,
            profile_id,
            f"appointment_{new_status}",
            appt.appointment_date,
            appt.start_time,
            type="appointment",
            related_appointment_id=appt.id,
        )

    emit_after_commit(
        db,
        "appointment_status_changed",
        {"appointment_id": appt.id, "status": new_status, "changed_by": actor_id},
    )
    db.commit()
    db.refresh(appt)

    logger.info(f"Appointment {appt.id} → {new_status} by profile={actor_id}")
    return appt


def expire_pending_appointments(db: Session, now: datetime | None = None) -> list[int]:
    """Cancel pending appointments whose start time has already passed."""
    now = now or datetime.now()
    today = now.date().isoformat()
    current_time = now.strftime("%H:%M")

    expired = (
        db.query(Appointments)
        .filter(
            Appointments.status == "pending",
            or_(
                Appointments.appointment_date < today,
                (Appointments.appointment_date == today) & (Appointments.start_time <= current_time),
            ),
        )
        .all()
    )

    stamp = now.isoformat(timespec="seconds")
    ids = []
    for appt in expired:
        appt.status = "cancelled"
        appt.cancelled_at = stamp
        appt.updated_at = stamp
        appt.cancellation_reason = "expired"
        for profile_id in (appt.tutor_profile_id, appt.professional_profile_id):
            notify(
                db,
                profile_id,
                "appointment_expired",
                appt.appointment_date,
                appt.start_time,
                type="appointment",
                related_appointment_id=appt.id,
            )
        emit_after_commit(
            db,
            "appointment_status_changed",
            {"appointment_id": appt.id, "status": "cancelled", "changed_by": None, "reason": "expired"},
        )
        ids.append(appt.id)

    if ids:
        db.commit()
        logger.info(f"Expired pending appointments cancelled: {ids}")
    return ids
