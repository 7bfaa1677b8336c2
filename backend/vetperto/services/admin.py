# backend/vetperto/services/admin.py

import json
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.tables import AdminLogs, Appointments, Profiles, Reviews


def get_stats(db: Session) -> dict:
    by_type = dict(
        db.query(Profiles.user_type, func.count(Profiles.id))
        .group_by(Profiles.user_type)
        .all()
    )
    by_status = dict(
        db.query(Appointments.status, func.count(Appointments.id))
        .group_by(Appointments.status)
        .all()
    )
    pending_verifications = (
        db.query(Profiles)
        .filter(Profiles.verification_status == "under_review")
        .count()
    )
    pending_reviews = db.query(Reviews).filter(Reviews.is_moderated == 0).count()

    return {
        "profiles": {
            "tutor": by_type.get("tutor", 0),
            "profissional": by_type.get("profissional", 0),
            "empresa": by_type.get("empresa", 0),
            "total": sum(by_type.values()),
        },
        "appointments": {
            status: by_status.get(status, 0)
            for status in ("pending", "confirmed", "cancelled", "completed", "no_show")
        },
        "pending_verifications": pending_verifications,
        "pending_reviews": pending_reviews,
    }


def list_users(db: Session, user_type: str | None = None, limit: int = 100, offset: int = 0) -> list[Profiles]:
    query = db.query(Profiles)
    if user_type:
        query = query.filter(Profiles.user_type == user_type)
    return query.order_by(Profiles.id).offset(offset).limit(limit).all()


def log_action(db: Session, admin_id: int, action: str, target_type: str | None = None,
               target_id: int | None = None, details: dict | None = None) -> AdminLogs:
    entry = AdminLogs(
        admin_profile_id=admin_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=json.dumps(details, ensure_ascii=False) if details else None,
    )
    db.add(entry)
    return entry


def list_logs(db: Session, limit: int = 100) -> list[AdminLogs]:
    return (
        db.query(AdminLogs)
        .order_by(AdminLogs.created_at.desc(), AdminLogs.id.desc())
        .limit(limit)
        .all()
    )
