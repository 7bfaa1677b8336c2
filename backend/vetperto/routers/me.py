# backend/vetperto/routers/me.py
# Professional account area: credits, monthly report, plan and verification documents.

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_professional
from ..models.tables import Profiles
from ..schemas.credits import CreditCheckRead, CreditStatsRead, ProfessionalReportRead
from ..schemas.documents import CanVerifyResponse, DocumentCreate, DocumentRead
from ..schemas.plans import MyPlanResponse
from ..services.credits import check_professional_credits, get_credit_stats, get_professional_report
from ..services.plans import can_accept_appointment, get_plan_limits
from ..services.verification import add_document, can_verify_profile, list_documents

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/credits", response_model=CreditCheckRead)
def get_my_credits(
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return check_professional_credits(db, profile.id)


@router.get("/credits/stats", response_model=CreditStatsRead)
def get_my_credit_stats(
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    stats = get_credit_stats(db, profile.id)
    db.commit()
    return stats


@router.get("/reports", response_model=ProfessionalReportRead)
def get_my_report(
    month: Optional[date] = Query(None, description="Any day of the month; defaults to the current month"),
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return get_professional_report(db, profile.id, month)


@router.get("/plan", response_model=MyPlanResponse)
def get_my_plan(
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return {
        "plan": get_plan_limits(db, profile.id),
        "quota": can_accept_appointment(db, profile.id),
    }


@router.get("/documents", response_model=list[DocumentRead])
def list_my_documents(
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return list_documents(db, profile.id)


@router.post("/documents", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def create_my_document(
    data: DocumentCreate,
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return add_document(db, profile, data.document_type, data.file_url)


@router.get("/documents/can-verify", response_model=CanVerifyResponse)
def get_my_verification_readiness(
    profile: Profiles = Depends(require_professional),
    db: Session = Depends(get_db),
):
    return CanVerifyResponse(
        can_verify=can_verify_profile(db, profile),
        verification_status=profile.verification_status,
    )
