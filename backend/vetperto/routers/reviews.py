# backend/vetperto/routers/reviews.py
# Public listing lives under /professionals/{id}/reviews; moderation under /admin.

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_tutor
from ..models.tables import Profiles
from ..schemas.reviews import ReviewCreate, ReviewRead
from ..services.reviews import create_review

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewRead, status_code=status.HTTP_201_CREATED)
def create(
    data: ReviewCreate,
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    return create_review(db, tutor.id, data.appointment_id, data.rating, data.comment)
