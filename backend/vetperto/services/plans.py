# backend/vetperto/services/plans.py
"""
Subscription plans catalog and plan limits.

limits.appointments_per_month = None  → unlimited
limits.portfolio_photos = -1          → unlimited
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import NotFound, ValidationFailed
from ..models.tables import Appointments, UserSubscriptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanLimits:
    appointments_per_month: Optional[int]
    verified_badge: bool
    price_table: bool
    portfolio_photos: int


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    slug: str
    price: float
    price_id: str
    product_id: str
    limits: PlanLimits
    popular: bool = False
    features: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return asdict(self)


PLANS: tuple[Plan, ...] = (
    Plan(
        id="basic",
        name="Básico",
        slug="basico",
        price=29.99,
        price_id="price_basico_monthly",
        product_id="prod_basico",
        limits=PlanLimits(10, False, False, 0),
        features=("Até 10 agendamentos por mês", "Perfil na busca"),
    ),
    Plan(
        id="intermediate",
        name="Intermediário",
        slug="intermediario",
        price=39.99,
        price_id="price_intermediario_monthly",
        product_id="prod_intermediario",
        limits=PlanLimits(30, True, False, 0),
        popular=True,
        features=("Até 30 agendamentos por mês", "Selo de verificado"),
    ),
    Plan(
        id="complete",
        name="Completo",
        slug="completo",
        price=49.99,
        price_id="price_completo_monthly",
        product_id="prod_completo",
        limits=PlanLimits(80, True, True, 10),
        features=("Até 80 agendamentos por mês", "Selo de verificado", "Tabela de preços", "Portfólio com 10 fotos"),
    ),
    Plan(
        id="enterprise",
        name="Empresas",
        slug="empresas",
        price=59.99,
        price_id="price_empresas_monthly",
        product_id="prod_empresas",
        limits=PlanLimits(None, True, True, -1),
        features=("Agendamentos ilimitados", "Selo de verificado", "Tabela de preços", "Portfólio ilimitado"),
    ),
)

NO_PLAN_NAME = "Sem Plano"
NO_PLAN_LIMITS = PlanLimits(0, False, False, 0)


def get_plan(identifier: str) -> Optional[Plan]:
    """Lookup by id, slug, price id or product id."""
    for plan in PLANS:
        if identifier in (plan.id, plan.slug, plan.price_id, plan.product_id):
            return plan
    return None


def get_active_subscription(db: Session, profile_id: int, today: date | None = None) -> Optional[UserSubscriptions]:
    today = today or date.today()
    subs = (
        db.query(UserSubscriptions)
        .filter(
            UserSubscriptions.profile_id == profile_id,
            UserSubscriptions.status == "active",
        )
        .order_by(UserSubscriptions.id.desc())
        .all()
    )
    for sub in subs:
        if sub.current_period_end and sub.current_period_end < today.isoformat():
            continue
        return sub
    return None


def get_plan_limits(db: Session, profile_id: int, today: date | None = None) -> dict:
    sub = get_active_subscription(db, profile_id, today)
    plan = get_plan(sub.plan_id) if sub else None
    if plan is None:
        return {
            "plan_id": None,
            "plan_name": NO_PLAN_NAME,
            "has_subscription": False,
            "limits": asdict(NO_PLAN_LIMITS),
        }
    return {
        "plan_id": plan.id,
        "plan_name": plan.name,
        "has_subscription": True,
        "limits": asdict(plan.limits),
    }


def count_monthly_appointments(db: Session, profile_id: int, month: date | None = None) -> int:
    """Appointments of the professional in month that were not cancelled."""
    month = (month or date.today()).replace(day=1)
    next_month = (month + timedelta(days=32)).replace(day=1)
    return (
        db.query(Appointments)
        .filter(
            Appointments.professional_profile_id == profile_id,
            Appointments.appointment_date >= month.isoformat(),
            Appointments.appointment_date < next_month.isoformat(),
            Appointments.status != "cancelled",
        )
        .count()
    )


def can_accept_appointment(db: Session, profile_id: int, month: date | None = None) -> dict:
    """
    Quota check for the month of the appointment.

    Professionals without a subscription are limited by credits only.
    """
    current = count_monthly_appointments(db, profile_id, month)
    sub = get_active_subscription(db, profile_id)
    plan = get_plan(sub.plan_id) if sub else None

    if plan is None:
        return {
            "can_accept": True,
            "current_count": current,
            "limit": None,
            "remaining": None,
            "plan_name": NO_PLAN_NAME,
        }

    limit = plan.limits.appointments_per_month
    if limit is None:
        return {
            "can_accept": True,
            "current_count": current,
            "limit": None,
            "remaining": None,
            "plan_name": plan.name,
        }

    return {
        "can_accept": current < limit,
        "current_count": current,
        "limit": limit,
        "remaining": max(limit - current, 0),
        "plan_name": plan.name,
    }


def activate_subscription(
    db: Session,
    profile_id: int,
    plan_identifier: str,
    period_days: int = 30,
    start: date | None = None,
) -> UserSubscriptions:
    plan = get_plan(plan_identifier)
    if plan is None:
        raise ValidationFailed(f"Unknown plan: {plan_identifier}")

    start = start or date.today()
    now = datetime.now().isoformat(timespec="seconds")

    # one active subscription per profile
    (
        db.query(UserSubscriptions)
        .filter(UserSubscriptions.profile_id == profile_id, UserSubscriptions.status == "active")
        .update({"status": "cancelled", "updated_at": now}, synchronize_session=False)
    )

    sub = UserSubscriptions(
        profile_id=profile_id,
        plan_id=plan.id,
        status="active",
        current_period_start=start.isoformat(),
        current_period_end=(start + timedelta(days=period_days)).isoformat(),
    )
    db.add(sub)
    db.commit()
    db.refresh(sub)

    logger.info(f"Subscription activated: profile={profile_id} plan={plan.id}")
    return sub


def cancel_subscription(db: Session, profile_id: int) -> UserSubscriptions:
    sub = get_active_subscription(db, profile_id)
    if sub is None:
        raise NotFound("No active subscription")
    sub.status = "cancelled"
    sub.updated_at = datetime.now().isoformat(timespec="seconds")
    db.commit()
    db.refresh(sub)

    logger.info(f"Subscription cancelled: profile={profile_id} plan={sub.plan_id}")
    return sub
