# backend/vetperto/schemas/accounts.py

import json
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


def json_list(v):
    """payment_methods is stored as a JSON array in a Text column."""
    if isinstance(v, str):
        try:
            v = json.loads(v)
        except json.JSONDecodeError:
            return []
    return v or []


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=6, max_length=128)
    full_name: str = Field(min_length=1, max_length=200)
    user_type: Literal["tutor", "profissional", "empresa"] = "tutor"
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid e-mail")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str
    user_type: Optional[Literal["tutor", "profissional", "empresa"]] = None


class ProfileRead(BaseModel):
    id: int
    email: str
    full_name: str
    user_type: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    specialty: Optional[str] = None
    crmv: Optional[str] = None
    cnpj: Optional[str] = None
    company_name: Optional[str] = None
    years_experience: Optional[int] = None
    home_service_radius_km: Optional[float] = None
    payment_methods: list[str] = []
    verification_status: str
    is_active: bool
    created_at: Optional[datetime] = None

    @field_validator("payment_methods", mode="before")
    @classmethod
    def parse_payment_methods(cls, v):
        return json_list(v)

    model_config = {"from_attributes": True}


class PublicProfileRead(BaseModel):
    id: int
    full_name: str
    user_type: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    specialty: Optional[str] = None
    company_name: Optional[str] = None
    years_experience: Optional[int] = None
    home_service_radius_km: Optional[float] = None
    payment_methods: list[str] = []
    verification_status: str

    @field_validator("payment_methods", mode="before")
    @classmethod
    def parse_payment_methods(cls, v):
        return json_list(v)

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    token: str
    client_type: str
    profile: ProfileRead


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    specialty: Optional[str] = None
    crmv: Optional[str] = None
    cnpj: Optional[str] = None
    company_name: Optional[str] = None
    years_experience: Optional[int] = Field(None, ge=0)
    home_service_radius_km: Optional[float] = Field(None, ge=0)
    payment_methods: Optional[list[str]] = None
