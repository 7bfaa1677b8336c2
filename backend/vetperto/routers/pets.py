# backend/vetperto/routers/pets.py
# The tutor's own pets. DELETE = hard delete

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_tutor
from ..models.tables import Pets as DBPets, Profiles
from ..schemas.pets import PetCreate, PetRead, PetUpdate

router = APIRouter(prefix="/pets", tags=["pets"])


def _get_own_pet(db: Session, tutor_id: int, id: int) -> DBPets:
    obj = db.get(DBPets, id)
    if not obj or obj.tutor_profile_id != tutor_id:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


def _to_columns(data: dict) -> dict:
    if data.get("birth_date") is not None:
        data["birth_date"] = data["birth_date"].isoformat()
    return data


@router.get("", response_model=list[PetRead])
def list_pets(
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    return (
        db.query(DBPets)
        .filter(DBPets.tutor_profile_id == tutor.id)
        .order_by(DBPets.name, DBPets.id)
        .all()
    )


@router.get("/{id}", response_model=PetRead)
def get_pet(
    id: int,
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    return _get_own_pet(db, tutor.id, id)


@router.post("", response_model=PetRead, status_code=status.HTTP_201_CREATED)
def create_pet(
    data: PetCreate,
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    obj = DBPets(tutor_profile_id=tutor.id, **_to_columns(data.model_dump()))
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/{id}", response_model=PetRead)
def update_pet(
    id: int,
    data: PetUpdate,
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    obj = _get_own_pet(db, tutor.id, id)

    for field, value in _to_columns(data.model_dump(exclude_unset=True)).items():
        setattr(obj, field, value)

    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pet(
    id: int,
    tutor: Profiles = Depends(require_tutor),
    db: Session = Depends(get_db),
):
    obj = _get_own_pet(db, tutor.id, id)
    db.delete(obj)
    db.commit()
