# backend/vetperto/schemas/pets.py

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

Species = Literal["cao", "gato", "pequeno_porte", "grande_porte", "producao", "silvestre_exotico"]


class PetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    species: Species
    breed: Optional[str] = None
    birth_date: Optional[date] = None
    weight: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None


class PetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    species: Optional[Species] = None
    breed: Optional[str] = None
    birth_date: Optional[date] = None
    weight: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None


class PetRead(BaseModel):
    id: int
    tutor_profile_id: int
    name: str
    species: str
    breed: Optional[str] = None
    birth_date: Optional[date] = None
    weight: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
