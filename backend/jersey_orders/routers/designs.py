"""Saved chalkboard designs."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..errors import NotFound
from ..security import require_admin

router = APIRouter(prefix="/designs", tags=["Designs"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=List[schemas.DesignOut])
def list_designs(db: Session = Depends(get_db)):
    return db.scalars(select(models.Design).order_by(models.Design.created.desc())).all()


@router.post("/", response_model=schemas.DesignOut, status_code=status.HTTP_201_CREATED)
def create_design(payload: schemas.DesignIn, db: Session = Depends(get_db)):
    design = models.Design(id=models.new_id(), created=models.utcnow(), **payload.model_dump())
    db.add(design)
    db.commit()
    db.refresh(design)
    return design


@router.delete("/{design_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_design(design_id: str, db: Session = Depends(get_db)):
    design = db.get(models.Design, design_id)
    if not design:
        raise NotFound("Design not found")
    db.delete(design)
    db.commit()
