# backend/vetperto/routers/admin.py
"""
Admin panel API.

Every state change is written to admin_logs.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_admin
from ..models.tables import Profiles
from ..redis_client import get_redis
from ..schemas.accounts import ProfileRead
from ..schemas.admin import ActiveUpdate, AdminLogRead, AdminStats, VerificationUpdate
from ..schemas.credits import CreditsAdd, CreditsRead
from ..schemas.documents import DocumentRead
from ..schemas.plans import SubscriptionActivate, SubscriptionRead
from ..schemas.reviews import ReviewModerate, ReviewRead
from ..services import admin as service
from ..services.accounts import get_roles
from ..services.credits import add_credits
from ..services.plans import activate_subscription, cancel_subscription
from ..services.reviews import ensure_can_moderate, list_pending_reviews, moderate_review
from ..services.slots import invalidate_professional_cache
from ..services.verification import list_documents, set_verification_status

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_profile(db: Session, id: int) -> Profiles:
    obj = db.get(Profiles, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.get("/stats", response_model=AdminStats)
def get_stats(
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return service.get_stats(db)


# ── Users ────────────────────────────────────────────────────────────────

@router.get("/users", response_model=list[ProfileRead])
def list_users(
    user_type: str | None = None,
    limit: int = 100,
    offset: int = 0,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return service.list_users(db, user_type, min(max(limit, 1), 500), max(offset, 0))


@router.patch("/users/{id}/active", response_model=ProfileRead)
def set_user_active(
    id: int,
    data: ActiveUpdate,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    obj = _get_profile(db, id)
    obj.is_active = 1 if data.is_active else 0
    service.log_action(
        db,
        admin.id,
        "profile_activated" if data.is_active else "profile_deactivated",
        target_type="profile",
        target_id=obj.id,
    )
    db.commit()
    db.refresh(obj)
    if not data.is_active:
        invalidate_professional_cache(redis, obj.id)
    return obj


@router.patch("/users/{id}/verification", response_model=ProfileRead)
def set_user_verification(
    id: int,
    data: VerificationUpdate,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return set_verification_status(db, admin.id, id, data.status, data.reason)


@router.get("/users/{id}/documents", response_model=list[DocumentRead])
def list_user_documents(
    id: int,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _get_profile(db, id)
    return list_documents(db, id)


@router.post("/users/{id}/credits", response_model=CreditsRead)
def add_user_credits(
    id: int,
    data: CreditsAdd,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _get_profile(db, id)
    service.log_action(db, admin.id, "credits_added", target_type="profile", target_id=id,
                       details={"amount": data.amount})
    return add_credits(db, id, data.amount)


@router.post("/users/{id}/subscription", response_model=SubscriptionRead, status_code=status.HTTP_201_CREATED)
def activate_user_subscription(
    id: int,
    data: SubscriptionActivate,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _get_profile(db, id)
    service.log_action(db, admin.id, "subscription_activated", target_type="profile", target_id=id,
                       details={"plan_id": data.plan_id})
    return activate_subscription(db, id, data.plan_id, data.period_days)


@router.delete("/users/{id}/subscription", response_model=SubscriptionRead)
def cancel_user_subscription(
    id: int,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    _get_profile(db, id)
    service.log_action(db, admin.id, "subscription_cancelled", target_type="profile", target_id=id)
    return cancel_subscription(db, id)


# ── Reviews ──────────────────────────────────────────────────────────────

@router.get("/reviews/pending", response_model=list[ReviewRead])
def pending_reviews(
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return list_pending_reviews(db)


@router.post("/reviews/{id}/moderate", response_model=ReviewRead)
def moderate(
    id: int,
    data: ReviewModerate,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_can_moderate(get_roles(db, admin.id))
    service.log_action(db, admin.id, "review_moderated", target_type="review", target_id=id,
                       details={"approve": data.approve})
    return moderate_review(db, id, admin.id, data.approve, data.notes)


# ── Logs ─────────────────────────────────────────────────────────────────

@router.get("/logs", response_model=list[AdminLogRead])
def list_logs(
    limit: int = 100,
    admin: Profiles = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return service.list_logs(db, min(max(limit, 1), 500))
