# backend/vetperto/routers/confirmations.py
# Links from confirmation e-mails; rate limited per IP by the middleware.

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.appointments import ConfirmRequest, ConfirmResponse
from ..services.confirmations import confirm_by_token

router = APIRouter(prefix="/confirmations", tags=["confirmations"])


@router.post("/{token}", response_model=ConfirmResponse)
def confirm_appointment(
    token: str,
    data: ConfirmRequest | None = None,
    db: Session = Depends(get_db),
):
    action = data.action if data else "confirm"
    return confirm_by_token(db, token, action)
