# backend/vetperto/deps.py
"""
Identity dependencies for routers.

The auth middleware has already classified the request; these turn
request.state into a Profiles row and enforce the client type.
"""

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .database import get_db
from .models.tables import Profiles


def get_current_profile(request: Request, db: Session = Depends(get_db)) -> Profiles:
    profile_id = getattr(request.state, "profile_id", None)
    if profile_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    profile = db.get(Profiles, profile_id)
    if not profile:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if not profile.is_active:
        raise HTTPException(status_code=403, detail="Account disabled")
    return profile


def require_client(*client_types: str):
    def dependency(request: Request, profile: Profiles = Depends(get_current_profile)) -> Profiles:
        if request.state.client_type not in client_types:
            raise HTTPException(status_code=403, detail="Access denied")
        return profile
    return dependency


def is_admin(request: Request) -> bool:
    return getattr(request.state, "client_type", None) == "admin"


require_tutor = require_client("tutor")
require_professional = require_client("professional", "company")
require_admin = require_client("admin")
