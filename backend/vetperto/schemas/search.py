# backend/vetperto/schemas/search.py

from typing import Optional
from pydantic import BaseModel


class SearchResult(BaseModel):
    id: int
    full_name: str
    user_type: str
    specialty: Optional[str] = None
    company_name: Optional[str] = None
    avatar_url: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    is_verified: bool
    rating: float
    review_count: int
    distance_km: Optional[float] = None
    location_types: list[str]
    services: list[str]
    payment_methods: list[str]
    home_service_radius_km: Optional[float] = None


class SearchResponse(BaseModel):
    total: int
    results: list[SearchResult]
