# backend/vetperto/schemas/admin.py

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class ProfileCounts(BaseModel):
    tutor: int
    profissional: int
    empresa: int
    total: int


class AdminStats(BaseModel):
    profiles: ProfileCounts
    appointments: dict[str, int]
    pending_verifications: int
    pending_reviews: int


class VerificationUpdate(BaseModel):
    status: Literal["not_verified", "under_review", "verified", "rejected"]
    reason: Optional[str] = Field(None, max_length=1000)


class ActiveUpdate(BaseModel):
    is_active: bool


class AdminLogRead(BaseModel):
    id: int
    admin_profile_id: Optional[int] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    details: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
