# backend/vetperto/routers/notifications.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_current_profile
from ..models.tables import Profiles
from ..schemas.notifications import MarkAllReadResponse, NotificationRead, UnreadCount
from ..services import notifications as service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationRead])
def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return service.list_notifications(db, profile.id, unread_only, min(max(limit, 1), 200))


@router.get("/unread-count", response_model=UnreadCount)
def get_unread_count(
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return UnreadCount(unread=service.unread_count(db, profile.id))


@router.post("/read-all", response_model=MarkAllReadResponse)
def read_all(
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return MarkAllReadResponse(updated=service.mark_all_read(db, profile.id))


@router.post("/{id}/read", response_model=NotificationRead)
def read_one(
    id: int,
    profile: Profiles = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    obj = service.mark_read(db, profile.id, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj
