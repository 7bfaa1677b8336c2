# backend/vetperto/schemas/documents.py

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class DocumentCreate(BaseModel):
    document_type: Literal["rg", "cnh", "crmv", "cnpj_card"]
    file_url: str = Field(min_length=1, max_length=1000)


class DocumentRead(BaseModel):
    id: int
    profile_id: int
    document_type: str
    file_url: str
    status: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CanVerifyResponse(BaseModel):
    can_verify: bool
    verification_status: str
