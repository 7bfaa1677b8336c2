# backend/vetperto/services/confirmations.py
"""
E-mail confirmation links for upcoming appointments.

A token is valid for TOKEN_TTL_HOURS and can be used once, either to
confirm the appointment or to ask the professional to reschedule.
"""

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound, TokenExpired, ValidationFailed
from ..i18n import t
from ..models.tables import AppointmentConfirmations, Appointments
from .events import emit_after_commit
from .notifications import notify

logger = logging.getLogger(__name__)

TOKEN_TTL_HOURS = 72
ACTIONS = ("confirm", "reschedule")


def create_confirmation_request(
    db: Session,
    appointment: Appointments,
    now: datetime | None = None,
) -> AppointmentConfirmations:
    now = now or datetime.now()
    confirmation = AppointmentConfirmations(
        appointment_id=appointment.id,
        token=secrets.token_urlsafe(24),
        type="confirmation_request",
        created_at=now.isoformat(timespec="seconds"),
    )
    db.add(confirmation)

    notify(
        db,
        appointment.tutor_profile_id,
        "confirmation_request",
        appointment.appointment_date,
        appointment.start_time,
        type="appointment",
        related_appointment_id=appointment.id,
        action_url=f"/confirmar-agendamento?token={confirmation.token}",
        action_label=t("confirm_action_label"),
    )
    emit_after_commit(
        db,
        "appointment_confirmation_requested",
        {"appointment_id": appointment.id, "token": confirmation.token},
    )
    return confirmation


def confirm_by_token(db: Session, token: str, action: str, now: datetime | None = None) -> dict:
    if action not in ACTIONS:
        raise ValidationFailed(f"action must be one of {ACTIONS}")

    now = now or datetime.now()
    confirmation = (
        db.query(AppointmentConfirmations)
        .filter(AppointmentConfirmations.token == token)
        .first()
    )
    if not confirmation:
        raise NotFound("Invalid confirmation link")

    created = datetime.fromisoformat(confirmation.created_at)
    if now - created > timedelta(hours=TOKEN_TTL_HOURS):
        raise TokenExpired("Confirmation link has expired")

    appt = confirmation.appointment
    if confirmation.confirmed_at or confirmation.reschedule_requested_at:
        return {
            "status": "already_processed",
            "appointment_id": appt.id,
            "appointment_status": appt.status,
        }

    if appt.status not in ("pending", "confirmed"):
        raise Conflict("Appointment is no longer active", code="appointment_inactive")

    stamp = now.isoformat(timespec="seconds")

    if action == "confirm":
        confirmation.confirmed_at = stamp
        if appt.status == "pending":
            appt.status = "confirmed"
            appt.confirmed_at = stamp
            appt.updated_at = stamp
            notify(
                db,
                appt.professional_profile_id,
                "appointment_confirmed",
                appt.appointment_date,
                appt.start_time,
                type="appointment",
                related_appointment_id=appt.id,
            )
            emit_after_commit(
                db,
                "appointment_status_changed",
                {"appointment_id": appt.id, "status": "confirmed", "changed_by": appt.tutor_profile_id},
            )
        result = "confirmed"
    else:
        confirmation.reschedule_requested_at = stamp
        notify(
            db,
            appt.professional_profile_id,
            "reschedule_requested",
            appt.appointment_date,
            appt.start_time,
            type="warning",
            related_appointment_id=appt.id,
        )
        emit_after_commit(db, "reschedule_requested", {"appointment_id": appt.id})
        result = "reschedule_requested"

    db.commit()
    logger.info(f"Confirmation token used: appointment={appt.id} action={action}")
    return {"status": result, "appointment_id": appt.id, "appointment_status": appt.status}
