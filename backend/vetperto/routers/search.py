# backend/vetperto/routers/search.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.search import SearchResponse
from ..services.search import SearchFilters, search_professionals

router = APIRouter(prefix="/search", tags=["search"])


@router.get("/professionals", response_model=SearchResponse)
def search(
    service: str | None = None,
    location_type: str | None = None,
    min_rating: float | None = Query(None, ge=0, le=5),
    payment_methods: list[str] = Query([]),
    latitude: float | None = None,
    longitude: float | None = None,
    radius_km: float | None = Query(None, gt=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    results = search_professionals(
        db,
        SearchFilters(
            service=service,
            location_type=location_type,
            min_rating=min_rating,
            payment_methods=payment_methods,
            latitude=latitude,
            longitude=longitude,
            radius_km=radius_km,
            limit=limit,
        ),
    )
    return SearchResponse(total=len(results), results=results)
