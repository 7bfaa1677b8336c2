# backend/vetperto/services/notifications.py
"""
In-app notifications (user_notifications rows).

Rows are added to the caller's session and committed together with the
change that triggered them.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from ..config import settings
from ..i18n import t
from ..models.tables import UserNotifications


def notify(
    db: Session,
    profile_id: int,
    key: str,
    *args,
    type: str = "info",
    related_appointment_id: int | None = None,
    action_url: str | None = None,
    action_label: str | None = None,
    lang: str | None = None,
) -> UserNotifications:
    """Queue a notification built from the i18n pair {key}_title / {key}_message."""
    lang = lang or settings.default_lang
    obj = UserNotifications(
        profile_id=profile_id,
        title=t(f"{key}_title", lang),
        message=t(f"{key}_message", lang, *args),
        type=type,
        related_appointment_id=related_appointment_id,
        action_url=action_url,
        action_label=action_label,
    )
    db.add(obj)
    return obj


def list_notifications(db: Session, profile_id: int, unread_only: bool = False, limit: int = 50):
    query = db.query(UserNotifications).filter(UserNotifications.profile_id == profile_id)
    if unread_only:
        query = query.filter(UserNotifications.is_read == 0)
    return (
        query.order_by(UserNotifications.created_at.desc(), UserNotifications.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(db: Session, profile_id: int) -> int:
    return (
        db.query(UserNotifications)
        .filter(UserNotifications.profile_id == profile_id, UserNotifications.is_read == 0)
        .count()
    )


def mark_read(db: Session, profile_id: int, notification_id: int) -> UserNotifications | None:
    obj = db.get(UserNotifications, notification_id)
    if not obj or obj.profile_id != profile_id:
        return None
    if not obj.is_read:
        obj.is_read = 1
        obj.read_at = datetime.now().isoformat(timespec="seconds")
        db.commit()
        db.refresh(obj)
    return obj


def mark_all_read(db: Session, profile_id: int) -> int:
    updated = (
        db.query(UserNotifications)
        .filter(UserNotifications.profile_id == profile_id, UserNotifications.is_read == 0)
        .update(
            {"is_read": 1, "read_at": datetime.now().isoformat(timespec="seconds")},
            synchronize_session=False,
        )
    )
    db.commit()
    return updated
