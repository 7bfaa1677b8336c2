# backend/vetperto/routers/plans.py

from fastapi import APIRouter, HTTPException

from ..schemas.plans import PlanRead
from ..services.plans import PLANS, get_plan

router = APIRouter(prefix="/plans", tags=["plans"])


@router.get("", response_model=list[PlanRead])
def list_plans():
    return [plan.to_dict() for plan in PLANS]


@router.get("/{identifier}", response_model=PlanRead)
def get_plan_by_identifier(identifier: str):
    """Lookup by id, slug, price id or product id."""
    plan = get_plan(identifier)
    if not plan:
        raise HTTPException(status_code=404, detail="Not found")
    return plan.to_dict()
