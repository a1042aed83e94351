"""Admin profile settings (a single row)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..errors import NotFound
from ..security import require_admin

router = APIRouter(prefix="/settings", tags=["Settings"], dependencies=[Depends(require_admin)])
PROFILE_ID = "profile"


@router.get("/profile", response_model=schemas.ProfileOut)
def get_profile(db: Session = Depends(get_db)):
    profile = db.get(models.ProfileSetting, PROFILE_ID)
    if not profile:
        raise NotFound("Profile not set")
    return profile


@router.put("/profile", response_model=schemas.ProfileOut)
def save_profile(payload: schemas.ProfileIn, db: Session = Depends(get_db)):
    profile = db.get(models.ProfileSetting, PROFILE_ID)
    if profile is None:
        profile = models.ProfileSetting(id=PROFILE_ID)
        db.add(profile)
    # merge: a phone left out of the payload keeps its stored value
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)
    profile.updated = models.utcnow()
    db.commit()
    db.refresh(profile)
    return profile
