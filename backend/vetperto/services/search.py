# backend/vetperto/services/search.py
"""
Professional search.

Filter pipeline (each step narrows the previous result):
    1. service text    → specialty or any active service name
    2. location type   → domiciliar / clinica / hospital / petshop
    3. min rating      → approved reviews average
    4. payment methods → any match
    5. distance        → haversine, within radius_km

Sorting: by distance when coordinates are given, otherwise by rating
(desc) with verified profiles first among equal ratings.
"""

import json
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import ValidationFailed
from ..models.tables import Availability, Profiles, Services
from .reviews import get_ratings

PROFESSIONAL_TYPES = ("profissional", "empresa")
EARTH_RADIUS_KM = 6371.0

# search filter value → appointment location types that satisfy it
LOCATION_FILTERS = {
    "domiciliar": ("home_visit", "both"),
    "clinica": ("clinic", "both"),
    "hospital": ("clinic", "both"),
    "petshop": ("clinic", "both"),
}


@dataclass
class SearchFilters:
    service: Optional[str] = None
    location_type: Optional[str] = None
    min_rating: Optional[float] = None
    payment_methods: list[str] = field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_km: Optional[float] = None
    limit: int = 50


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """True when a usable coordinate pair is given."""
    if latitude is None and longitude is None:
        return False
    if latitude is None or longitude is None:
        raise ValidationFailed("latitude and longitude must be given together")
    if not -90 <= latitude <= 90:
        raise ValidationFailed("latitude must be between -90 and 90")
    if not -180 <= longitude <= 180:
        raise ValidationFailed("longitude must be between -180 and 180")
    return True


def search_professionals(db: Session, filters: SearchFilters) -> list[dict]:
    has_coords = validate_coordinates(filters.latitude, filters.longitude)
    if filters.location_type and filters.location_type not in LOCATION_FILTERS:
        raise ValidationFailed(f"Unknown location type: {filters.location_type}")

    profiles = (
        db.query(Profiles)
        .filter(Profiles.is_active == 1, Profiles.user_type.in_(PROFESSIONAL_TYPES))
        .all()
    )
    ids = [p.id for p in profiles]
    services = _services_by_profile(db, ids)
    locations = _location_types_by_profile(db, ids, services)
    ratings = get_ratings(db, ids)

    needle = (filters.service or "").strip().lower()
    accepted_locations = set(LOCATION_FILTERS.get(filters.location_type, ()))
    wanted_payments = {m.strip().lower() for m in filters.payment_methods if m.strip()}

    results = []
    for profile in profiles:
        names = [s.name for s in services.get(profile.id, [])]

        if needle:
            haystack = [profile.specialty or "", *names]
            if not any(needle in text.lower() for text in haystack):
                continue

        if accepted_locations and not accepted_locations & locations.get(profile.id, set()):
            continue

        rating = ratings.get(profile.id, {"average": 0.0, "count": 0})
        if filters.min_rating is not None and rating["average"] < filters.min_rating:
            continue

        payments = _payment_methods(profile)
        if wanted_payments and not wanted_payments & {m.lower() for m in payments}:
            continue

        distance = None
        if has_coords and profile.latitude is not None and profile.longitude is not None:
            distance = haversine_km(filters.latitude, filters.longitude, profile.latitude, profile.longitude)

        if has_coords and filters.radius_km is not None:
            if distance is None:
                continue
            in_radius = distance <= filters.radius_km
            # home visits: the professional's own service radius also counts
            serves_home = (
                filters.location_type == "domiciliar"
                and profile.home_service_radius_km is not None
                and distance <= profile.home_service_radius_km
            )
            if not (in_radius or serves_home):
                continue

        results.append({
            "id": profile.id,
            "full_name": profile.full_name,
            "user_type": profile.user_type,
            "specialty": profile.specialty,
            "company_name": profile.company_name,
            "avatar_url": profile.avatar_url,
            "city": profile.city,
            "state": profile.state,
            "is_verified": profile.verification_status == "verified",
            "rating": rating["average"],
            "review_count": rating["count"],
            "distance_km": round(distance, 2) if distance is not None else None,
            "location_types": sorted(locations.get(profile.id, set())),
            "services": names,
            "payment_methods": payments,
            "home_service_radius_km": profile.home_service_radius_km,
        })

    if has_coords:
        results.sort(key=lambda r: (r["distance_km"] is None, r["distance_km"] or 0.0))
    else:
        results.sort(key=lambda r: (-r["rating"], not r["is_verified"]))

    return results[: filters.limit]


def _services_by_profile(db: Session, ids: list[int]) -> dict[int, list[Services]]:
    grouped: dict[int, list[Services]] = defaultdict(list)
    if not ids:
        return grouped
    rows = (
        db.query(Services)
        .filter(Services.profile_id.in_(ids), Services.is_active == 1)
        .order_by(Services.name)
        .all()
    )
    for service in rows:
        grouped[service.profile_id].append(service)
    return grouped


def _location_types_by_profile(db: Session, ids: list[int], services: dict[int, list[Services]]) -> dict[int, set[str]]:
    grouped: dict[int, set[str]] = defaultdict(set)
    for profile_id, items in services.items():
        grouped[profile_id].update(s.location_type for s in items)
    if ids:
        rows = (
            db.query(Availability.profile_id, Availability.location_type)
            .filter(Availability.profile_id.in_(ids))
            .distinct()
            .all()
        )
        for profile_id, location_type in rows:
            grouped[profile_id].add(location_type)
    return grouped


def _payment_methods(profile: Profiles) -> list[str]:
    try:
        value = json.loads(profile.payment_methods or "[]")
    except json.JSONDecodeError:
        return []
    return [str(v) for v in value] if isinstance(value, list) else []
