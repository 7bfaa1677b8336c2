# backend/vetperto/services/credits.py
"""
Professional booking credits.

Every appointment request consumes one credit of the professional.
Without credits new requests are refused and recorded as lost clients.

Status:
  active       remaining > LOW_CREDITS_THRESHOLD
  low_credits  0 < remaining <= LOW_CREDITS_THRESHOLD
  exhausted    remaining <= 0
"""

import logging
from datetime import date, datetime

from sqlalchemy.orm import Session

from ..errors import NoCreditsAvailable, ValidationFailed
from ..models.tables import Appointments, LostAppointments, ProfessionalCredits
from .events import emit_after_commit
from .notifications import notify
from .slots.calendar import calendar_range

logger = logging.getLogger(__name__)

LOW_CREDITS_THRESHOLD = 3
STARTER_CREDITS = 5

NOTIFY_KEYS = {
    "low_credits": ("credits_low", "warning"),
    "exhausted": ("credits_exhausted", "error"),
    "active": ("credits_reactivated", "success"),
}


def credit_status(remaining: int) -> str:
    if remaining <= 0:
        return "exhausted"
    if remaining <= LOW_CREDITS_THRESHOLD:
        return "low_credits"
    return "active"


def get_or_create_credits(db: Session, profile_id: int, initial: int = 0) -> ProfessionalCredits:
    credits = (
        db.query(ProfessionalCredits)
        .filter(ProfessionalCredits.profile_id == profile_id)
        .first()
    )
    if credits is None:
        credits = ProfessionalCredits(
            profile_id=profile_id,
            total_credits=initial,
            used_credits=0,
            remaining_credits=initial,
            status=credit_status(initial),
        )
        db.add(credits)
        db.flush()
    return credits


def check_professional_credits(db: Session, profile_id: int) -> dict:
    credits = (
        db.query(ProfessionalCredits)
        .filter(ProfessionalCredits.profile_id == profile_id)
        .first()
    )
    remaining = credits.remaining_credits if credits else 0
    return {
        "has_credits": remaining > 0,
        "remaining": remaining,
        "status": credit_status(remaining),
    }


def get_credit_stats(db: Session, profile_id: int) -> dict:
    credits = get_or_create_credits(db, profile_id)
    confirmed = (
        db.query(Appointments)
        .filter(
            Appointments.professional_profile_id == profile_id,
            Appointments.status.in_(("confirmed", "completed")),
        )
        .count()
    )
    lost = (
        db.query(LostAppointments)
        .filter(LostAppointments.professional_profile_id == profile_id)
        .count()
    )
    return {
        "total": credits.total_credits,
        "used": credits.used_credits,
        "remaining": credits.remaining_credits,
        "status": credits.status,
        "confirmed_appointments": confirmed,
        "lost_clients": lost,
    }


def get_professional_report(db: Session, profile_id: int, month: date | None = None) -> dict:
    """Month summary for the reports page. Any day of the month selects it."""
    first, last = calendar_range(month or date.today(), 0)
    rows = (
        db.query(Appointments.status, Appointments.price, Appointments.tutor_profile_id)
        .filter(
            Appointments.professional_profile_id == profile_id,
            Appointments.appointment_date >= first.isoformat(),
            Appointments.appointment_date <= last.isoformat(),
        )
        .all()
    )
    completed = [row for row in rows if row.status == "completed"]
    return {
        "month": first.strftime("%Y-%m"),
        "total_appointments": len(rows),
        "completed_appointments": len(completed),
        # revenue only counts what was actually delivered
        "revenue": sum(row.price or 0 for row in completed),
        "unique_tutors": len({row.tutor_profile_id for row in rows}),
    }


def consume_credit(db: Session, profile_id: int) -> ProfessionalCredits:
    """Take one credit inside the caller's transaction (no commit)."""
    credits = get_or_create_credits(db, profile_id)
    if credits.remaining_credits <= 0:
        raise NoCreditsAvailable("Professional has no credits available")

    previous = credits.status
    credits.used_credits += 1
    credits.remaining_credits -= 1
    _apply_status(db, credits, previous)
    return credits


def add_credits(db: Session, profile_id: int, amount: int) -> ProfessionalCredits:
    if amount <= 0:
        raise ValidationFailed("amount must be positive")

    credits = get_or_create_credits(db, profile_id)
    previous = credits.status
    credits.total_credits += amount
    credits.remaining_credits += amount
    _apply_status(db, credits, previous)
    db.commit()
    db.refresh(credits)

    logger.info(f"Credits added: profile={profile_id} amount={amount} remaining={credits.remaining_credits}")
    return credits


def record_lost_appointment(
    db: Session,
    professional_id: int,
    tutor_id: int | None,
    service_id: int | None = None,
    attempted_date: date | None = None,
    reason: str = "no_credits",
) -> LostAppointments:
    lost = LostAppointments(
        professional_profile_id=professional_id,
        tutor_profile_id=tutor_id,
        service_id=service_id,
        reason=reason,
        attempted_date=attempted_date.isoformat() if attempted_date else None,
    )
    db.add(lost)
    notify(db, professional_id, "lost_client", type="warning")
    emit_after_commit(db, "lost_appointment_recorded", {"professional_id": professional_id})
    db.commit()

    logger.warning(f"Lost appointment recorded: professional={professional_id} tutor={tutor_id} reason={reason}")
    return lost


def _apply_status(db: Session, credits: ProfessionalCredits, previous: str) -> None:
    credits.status = credit_status(credits.remaining_credits)
    credits.updated_at = datetime.now().isoformat(timespec="seconds")

    if credits.status == previous:
        return

    key, kind = NOTIFY_KEYS[credits.status]
    notify(db, credits.profile_id, key, credits.remaining_credits, type=kind)
    emit_after_commit(
        db,
        "credit_status_changed",
        {
            "profile_id": credits.profile_id,
            "status": credits.status,
            "previous": previous,
            "remaining": credits.remaining_credits,
        },
    )
