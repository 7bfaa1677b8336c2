# backend/vetperto/routers/internal.py
"""
Internal API endpoints for trusted consumers (cron jobs, billing).

Access: X-Internal-Token only (client type "internal" in the access policy).
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.credits import CreditsAdd, CreditsRead
from ..schemas.plans import SubscriptionActivate, SubscriptionRead
from ..services.appointments import expire_pending_appointments
from ..services.confirmation_checker import request_confirmations
from ..services.credits import add_credits
from ..services.plans import activate_subscription, cancel_subscription
from ..services.reminder_checker import check_upcoming_appointments

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["internal"])


class ChecksRequest(BaseModel):
    """Run the periodic checks once, optionally at a given moment."""
    now: Optional[datetime] = None
    checks: list[str] = Field(default_factory=lambda: ["confirmations", "reminders", "expiry"])


class ChecksResponse(BaseModel):
    confirmations: list[int] = []
    reminders: list[int] = []
    expired: list[int] = []


@router.post("/subscriptions/{profile_id}", response_model=SubscriptionRead, status_code=status.HTTP_201_CREATED)
def activate(
    profile_id: int,
    data: SubscriptionActivate,
    db: Session = Depends(get_db),
):
    sub = activate_subscription(db, profile_id, data.plan_id, data.period_days)
    logger.info(f"Internal subscription activation: profile={profile_id} plan={sub.plan_id}")
    return sub


@router.post("/subscriptions/{profile_id}/cancel", response_model=SubscriptionRead)
def cancel(profile_id: int, db: Session = Depends(get_db)):
    return cancel_subscription(db, profile_id)


@router.post("/credits/{profile_id}", response_model=CreditsRead)
def top_up_credits(
    profile_id: int,
    data: CreditsAdd,
    db: Session = Depends(get_db),
):
    return add_credits(db, profile_id, data.amount)


@router.post("/checks/run", response_model=ChecksResponse)
def run_checks(
    data: ChecksRequest,
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    now = data.now or datetime.now()
    result = ChecksResponse()

    if "confirmations" in data.checks:
        result.confirmations = request_confirmations(db, now)
    if "reminders" in data.checks:
        result.reminders = check_upcoming_appointments(db, redis, now)
    if "expiry" in data.checks:
        result.expired = expire_pending_appointments(db, now)

    logger.info(
        f"Internal checks run at {now.isoformat(timespec='seconds')}: "
        f"confirmations={len(result.confirmations)} reminders={len(result.reminders)} "
        f"expired={len(result.expired)}"
    )
    return result
