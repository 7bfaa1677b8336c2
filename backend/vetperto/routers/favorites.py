# backend/vetperto/routers/favorites.py
# Adding an existing favorite returns the existing row.

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_tutor
from ..models.tables import FavoriteProfessionals as DBFavorites, Profiles
from ..schemas.favorites import FavoriteCreate, FavoriteRead
from ..services.appointments import PROFESSIONAL_TYPES

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.get("", response_model=list[FavoriteRead])
def list_favorites(
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    return (
        db.query(DBFavorites)
        .filter(DBFavorites.tutor_profile_id == tutor.id)
        .order_by(DBFavorites.created_at.desc(), DBFavorites.id.desc())
        .all()
    )


@router.post("", response_model=FavoriteRead, status_code=status.HTTP_201_CREATED)
def add_favorite(
    data: FavoriteCreate,
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    professional = db.get(Profiles, data.professional_profile_id)
    if not professional or professional.user_type not in PROFESSIONAL_TYPES:
        raise HTTPException(status_code=404, detail="Not found")

    obj = (
        db.query(DBFavorites)
        .filter(
            DBFavorites.tutor_profile_id == tutor.id,
            DBFavorites.professional_profile_id == professional.id,
        )
        .first()
    )
    if obj:
        return obj

    obj = DBFavorites(tutor_profile_id=tutor.id, professional_profile_id=professional.id)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{professional_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_favorite(
    professional_id: int,
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    obj = (
        db.query(DBFavorites)
        .filter(
            DBFavorites.tutor_profile_id == tutor.id,
            DBFavorites.professional_profile_id == professional_id,
        )
        .first()
    )
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")

    db.delete(obj)
    db.commit()
