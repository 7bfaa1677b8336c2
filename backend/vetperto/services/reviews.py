# backend/vetperto/services/reviews.py

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from ..models.tables import Appointments, Reviews
from .notifications import notify

logger = logging.getLogger(__name__)


def create_review(db: Session, tutor_id: int, appointment_id: int, rating: int, comment: str | None = None) -> Reviews:
    appt = db.get(Appointments, appointment_id)
    if not appt or appt.tutor_profile_id != tutor_id:
        raise NotFound("Appointment not found")
    if appt.status != "completed":
        raise ValidationFailed("Only completed appointments can be reviewed", code="not_completed")
    if not 1 <= rating <= 5:
        raise ValidationFailed("rating must be between 1 and 5")

    exists = db.query(Reviews.id).filter(Reviews.appointment_id == appointment_id).first()
    if exists:
        raise Conflict("Appointment already reviewed", code="already_reviewed")

    review = Reviews(
        appointment_id=appt.id,
        tutor_profile_id=tutor_id,
        professional_profile_id=appt.professional_profile_id,
        rating=rating,
        comment=(comment or "").strip() or None,
    )
    db.add(review)
    db.commit()
    db.refresh(review)

    logger.info(f"Review created: id={review.id} appointment={appt.id} rating={rating}")
    return review


def moderate_review(db: Session, review_id: int, moderator_id: int, approve: bool, notes: str | None = None) -> Reviews:
    review = db.get(Reviews, review_id)
    if not review:
        raise NotFound("Review not found")

    review.is_moderated = 1
    review.is_approved = 1 if approve else 0
    review.moderated_by = moderator_id
    review.moderated_at = datetime.now().isoformat(timespec="seconds")
    review.moderation_notes = notes

    if approve:
        notify(db, review.professional_profile_id, "review_published", review.rating, type="success")

    db.commit()
    db.refresh(review)

    logger.info(f"Review {review.id} moderated by {moderator_id}: {'approved' if approve else 'rejected'}")
    return review


def list_pending_reviews(db: Session) -> list[Reviews]:
    return (
        db.query(Reviews)
        .filter(Reviews.is_moderated == 0)
        .order_by(Reviews.created_at, Reviews.id)
        .all()
    )


def list_public_reviews(db: Session, professional_id: int) -> list[Reviews]:
    return (
        db.query(Reviews)
        .filter(Reviews.professional_profile_id == professional_id, Reviews.is_approved == 1)
        .order_by(Reviews.created_at.desc(), Reviews.id.desc())
        .all()
    )


def get_rating(db: Session, professional_id: int) -> dict:
    avg, count = (
        db.query(func.avg(Reviews.rating), func.count(Reviews.id))
        .filter(Reviews.professional_profile_id == professional_id, Reviews.is_approved == 1)
        .one()
    )
    return {"average": round(float(avg), 2) if avg is not None else 0.0, "count": count}


def get_ratings(db: Session, professional_ids: list[int]) -> dict[int, dict]:
    """Batch version of get_rating for search results."""
    if not professional_ids:
        return {}
    rows = (
        db.query(Reviews.professional_profile_id, func.avg(Reviews.rating), func.count(Reviews.id))
        .filter(Reviews.professional_profile_id.in_(professional_ids), Reviews.is_approved == 1)
        .group_by(Reviews.professional_profile_id)
        .all()
    )
    return {pid: {"average": round(float(avg), 2), "count": count} for pid, avg, count in rows}


def ensure_can_moderate(roles: list[str]) -> None:
    if not {"admin", "moderator"} & set(roles):
        raise PermissionDenied("Moderator role required")
