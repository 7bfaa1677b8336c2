# backend/vetperto/routers/auth.py

from fastapi import APIRouter, Depends, Request, Response, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_current_profile
from ..models.tables import Profiles
from ..redis_client import get_redis
from ..schemas.accounts import (
    LoginRequest,
    LoginResponse,
    ProfileRead,
    ProfileUpdate,
    RegisterRequest,
)
from ..services import accounts

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    profile = accounts.register(db, **data.model_dump())
    client_type = accounts.client_type_for(db, profile)
    token = accounts.create_session(redis, profile.id, client_type)
    return LoginResponse(token=token, client_type=client_type, profile=ProfileRead.model_validate(profile))


@router.post("/login", response_model=LoginResponse)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    profile = accounts.authenticate(db, data.email, data.password, data.user_type)
    client_type = accounts.client_type_for(db, profile)
    token = accounts.create_session(redis, profile.id, client_type)
    return LoginResponse(token=token, client_type=client_type, profile=ProfileRead.model_validate(profile))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(request: Request, redis: Redis = Depends(get_redis)):
    token = getattr(request.state, "token", None)
    if token:
        accounts.destroy_session(redis, token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=ProfileRead)
def me(profile: Profiles = Depends(get_current_profile)):
    return profile


@router.patch("/me", response_model=ProfileRead)
def update_me(
    data: ProfileUpdate,
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return accounts.update_profile(db, profile, data.model_dump(exclude_unset=True))
