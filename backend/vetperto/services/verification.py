# backend/vetperto/services/verification.py
"""
Professional documents and profile verification.

profissional: an identity document (rg or cnh) and a crmv
empresa:      a cnpj_card
"""

import logging

from sqlalchemy.orm import Session

from ..errors import NotFound, ValidationFailed
from ..models.tables import Documents, Profiles
from .admin import log_action
from .events import emit_after_commit
from .notifications import notify

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = ("rg", "cnh", "crmv", "cnpj_card")
VERIFICATION_STATUSES = ("not_verified", "under_review", "verified", "rejected")


def add_document(db: Session, profile: Profiles, document_type: str, file_url: str) -> Documents:
    if document_type not in DOCUMENT_TYPES:
        raise ValidationFailed(f"Invalid document_type: {document_type}")
    if profile.user_type not in ("profissional", "empresa"):
        raise ValidationFailed("Only professionals upload verification documents")

    doc = Documents(profile_id=profile.id, document_type=document_type, file_url=file_url)
    db.add(doc)

    if profile.verification_status in ("not_verified", "rejected") and can_verify_profile(db, profile, extra=document_type):
        profile.verification_status = "under_review"

    db.commit()
    db.refresh(doc)
    return doc


def list_documents(db: Session, profile_id: int) -> list[Documents]:
    return (
        db.query(Documents)
        .filter(Documents.profile_id == profile_id)
        .order_by(Documents.created_at, Documents.id)
        .all()
    )


def can_verify_profile(db: Session, profile: Profiles, extra: str | None = None) -> bool:
    types = {
        row[0]
        for row in db.query(Documents.document_type).filter(Documents.profile_id == profile.id).all()
    }
    if extra:
        types.add(extra)

    if profile.user_type == "empresa":
        return "cnpj_card" in types
    if profile.user_type == "profissional":
        return bool({"rg", "cnh"} & types) and "crmv" in types
    return False


def set_verification_status(
    db: Session,
    admin_id: int,
    profile_id: int,
    status: str,
    reason: str | None = None,
) -> Profiles:
    if status not in VERIFICATION_STATUSES:
        raise ValidationFailed(f"Invalid verification status: {status}")

    profile = db.get(Profiles, profile_id)
    if not profile:
        raise NotFound("Profile not found")
    if status == "verified" and not can_verify_profile(db, profile):
        raise ValidationFailed("Required documents are missing", code="documents_missing")

    previous = profile.verification_status
    profile.verification_status = status
    if status in ("verified", "rejected"):
        (
            db.query(Documents)
            .filter(Documents.profile_id == profile.id, Documents.status == "pending")
            .update({"status": "approved" if status == "verified" else "rejected"}, synchronize_session=False)
        )

    log_action(
        db,
        admin_id,
        "verification_status_changed",
        target_type="profile",
        target_id=profile.id,
        details={"from": previous, "to": status, "reason": reason},
    )
    notify(db, profile.id, f"verification_{status}", reason or "-", type="verification")
    emit_after_commit(
        db,
        "verification_status_changed",
        {"profile_id": profile.id, "status": status, "reason": reason},
    )
    db.commit()
    db.refresh(profile)

    logger.info(f"Verification status of profile {profile.id}: {previous} → {status} (admin={admin_id})")
    return profile
