# backend/vetperto/schemas/plans.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class PlanLimitsRead(BaseModel):
    appointments_per_month: Optional[int] = None
    verified_badge: bool
    price_table: bool
    portfolio_photos: int


class PlanRead(BaseModel):
    id: str
    name: str
    slug: str
    price: float
    price_id: str
    product_id: str
    popular: bool
    features: list[str]
    limits: PlanLimitsRead


class PlanLimitsResponse(BaseModel):
    plan_id: Optional[str] = None
    plan_name: str
    has_subscription: bool
    limits: PlanLimitsRead


class QuotaResponse(BaseModel):
    can_accept: bool
    current_count: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    plan_name: str


class MyPlanResponse(BaseModel):
    plan: PlanLimitsResponse
    quota: QuotaResponse


class SubscriptionActivate(BaseModel):
    plan_id: str
    period_days: int = Field(30, gt=0, le=366)


class SubscriptionRead(BaseModel):
    id: int
    profile_id: int
    plan_id: str
    status: str
    current_period_start: Optional[date] = None
    current_period_end: Optional[date] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
