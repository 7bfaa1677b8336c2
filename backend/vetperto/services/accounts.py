# backend/vetperto/services/accounts.py
"""
Accounts: registration, password login and Redis-backed sessions.

Session key: session:{token} → {"profile_id", "client_type"} (TTL settings.session_ttl_seconds)
"""

import json
import logging

from redis import Redis
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import Conflict, PermissionDenied, ValidationFailed
from ..models.tables import Profiles, UserRoles
from ..utils.hashing import hash_password, new_token, verify_password
from .credits import STARTER_CREDITS, get_or_create_credits

logger = logging.getLogger(__name__)

USER_TYPES = ("tutor", "profissional", "empresa")
PROFESSIONAL_TYPES = ("profissional", "empresa")

# user_type → client type used by the access policy
CLIENT_TYPES = {
    "tutor": "tutor",
    "profissional": "professional",
    "empresa": "company",
}

SESSION_PREFIX = "session"

EDITABLE_FIELDS = (
    "full_name", "phone", "bio", "avatar_url", "address", "city", "state",
    "zip_code", "latitude", "longitude", "specialty", "crmv", "cnpj",
    "company_name", "years_experience", "home_service_radius_km",
)


def register(
    db: Session,
    email: str,
    password: str,
    full_name: str,
    user_type: str = "tutor",
    phone: str | None = None,
) -> Profiles:
    if user_type not in USER_TYPES:
        raise ValidationFailed(f"Invalid user_type: {user_type}")
    if len(password) < 6:
        raise ValidationFailed("Password must have at least 6 characters")

    email = email.strip().lower()
    exists = (
        db.query(Profiles.id)
        .filter(Profiles.email == email, Profiles.user_type == user_type)
        .first()
    )
    if exists:
        raise Conflict("E-mail already registered", code="email_taken")

    profile = Profiles(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name.strip(),
        user_type=user_type,
        phone=phone,
    )
    db.add(profile)
    db.flush()
    db.add(UserRoles(profile_id=profile.id, role="user"))

    if user_type in PROFESSIONAL_TYPES:
        get_or_create_credits(db, profile.id, initial=STARTER_CREDITS)

    db.commit()
    db.refresh(profile)

    logger.info(f"Profile registered: id={profile.id} type={user_type}")
    return profile


def authenticate(db: Session, email: str, password: str, user_type: str | None = None) -> Profiles:
    query = db.query(Profiles).filter(Profiles.email == email.strip().lower())
    if user_type:
        query = query.filter(Profiles.user_type == user_type)

    for profile in query.all():
        if verify_password(password, profile.password_hash):
            if not profile.is_active:
                raise PermissionDenied("Account disabled")
            return profile

    raise PermissionDenied("Invalid credentials", code="invalid_credentials")


def create_session(redis: Redis, profile_id: int, client_type: str) -> str:
    token = new_token()
    redis.setex(
        f"{SESSION_PREFIX}:{token}",
        settings.session_ttl_seconds,
        json.dumps({"profile_id": profile_id, "client_type": client_type}),
    )
    return token


def resolve_session(redis: Redis, token: str) -> dict | None:
    """{"profile_id": int, "client_type": str} or None when unknown or expired."""
    raw = redis.get(f"{SESSION_PREFIX}:{token}")
    if not raw:
        return None
    try:
        data = json.loads(raw)
        return {"profile_id": int(data["profile_id"]), "client_type": data["client_type"]}
    except (ValueError, KeyError, TypeError):
        return None


def destroy_session(redis: Redis, token: str) -> None:
    redis.delete(f"{SESSION_PREFIX}:{token}")


def get_roles(db: Session, profile_id: int) -> list[str]:
    return [
        row[0]
        for row in db.query(UserRoles.role).filter(UserRoles.profile_id == profile_id).all()
    ]


def client_type_for(db: Session, profile: Profiles) -> str:
    if "admin" in get_roles(db, profile.id):
        return "admin"
    return CLIENT_TYPES.get(profile.user_type, "tutor")


def grant_role(db: Session, profile_id: int, role: str) -> None:
    if role not in ("admin", "moderator", "user"):
        raise ValidationFailed(f"Invalid role: {role}")
    if role not in get_roles(db, profile_id):
        db.add(UserRoles(profile_id=profile_id, role=role))
        db.commit()


def update_profile(db: Session, profile: Profiles, data: dict) -> Profiles:
    for key, value in data.items():
        if key in EDITABLE_FIELDS:
            setattr(profile, key, value)

    if "payment_methods" in data and data["payment_methods"] is not None:
        profile.payment_methods = json.dumps(list(data["payment_methods"]))

    if profile.latitude is not None and not -90 <= profile.latitude <= 90:
        raise ValidationFailed("latitude must be between -90 and 90")
    if profile.longitude is not None and not -180 <= profile.longitude <= 180:
        raise ValidationFailed("longitude must be between -180 and 180")

    db.commit()
    db.refresh(profile)
    return profile
