# backend/vetperto/schemas/credits.py

from pydantic import BaseModel, Field


class CreditCheckRead(BaseModel):
    has_credits: bool
    remaining: int
    status: str


class CreditStatsRead(BaseModel):
    total: int
    used: int
    remaining: int
    status: str
    confirmed_appointments: int
    lost_clients: int


class ProfessionalReportRead(BaseModel):
    month: str
    total_appointments: int
    completed_appointments: int
    revenue: float
    unique_tutors: int


class CreditsAdd(BaseModel):
    amount: int = Field(gt=0, le=10000)


class CreditsRead(BaseModel):
    profile_id: int
    total_credits: int
    used_credits: int
    remaining_credits: int
    status: str

    model_config = {"from_attributes": True}
