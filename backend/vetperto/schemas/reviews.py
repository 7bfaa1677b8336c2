# backend/vetperto/schemas/reviews.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    appointment_id: int
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewRead(BaseModel):
    id: int
    appointment_id: int
    tutor_profile_id: int
    professional_profile_id: int
    rating: int
    comment: Optional[str] = None
    is_approved: bool
    is_moderated: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReviewModerate(BaseModel):
    approve: bool
    notes: Optional[str] = Field(None, max_length=1000)


class RatingRead(BaseModel):
    average: float
    count: int
