# backend/vetperto/schemas/favorites.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class FavoriteCreate(BaseModel):
    professional_profile_id: int


class FavoriteRead(BaseModel):
    id: int
    tutor_profile_id: int
    professional_profile_id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
