"""Material catalogue; status is always derived from stock."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..errors import NotFound
from ..security import require_admin

router = APIRouter(prefix="/materials", tags=["Materials"], dependencies=[Depends(require_admin)])


def stock_status(stock: int) -> str:
    return models.MaterialStatus.AVAILABLE.value if stock > 0 else models.MaterialStatus.OUT_OF_STOCK.value


def _get_material(db: Session, material_id: str) -> models.Material:
    material = db.get(models.Material, material_id)
    if not material:
        raise NotFound("Material not found")
    return material


@router.get("/", response_model=List[schemas.MaterialOut])
def list_materials(db: Session = Depends(get_db)):
    return db.scalars(select(models.Material).order_by(models.Material.name)).all()


@router.post("/", response_model=schemas.MaterialOut, status_code=status.HTTP_201_CREATED)
def create_material(payload: schemas.MaterialIn, db: Session = Depends(get_db)):
    material = models.Material(id=models.new_id(), status=stock_status(payload.stock), **payload.model_dump())
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


@router.put("/{material_id}", response_model=schemas.MaterialOut)
def update_material(material_id: str, payload: schemas.MaterialIn, db: Session = Depends(get_db)):
    material = _get_material(db, material_id)
    for field, value in payload.model_dump().items():
        setattr(material, field, value)
    material.status = stock_status(material.stock)
    db.add(material)
    db.commit()
    db.refresh(material)
    return material


@router.delete("/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_material(material_id: str, db: Session = Depends(get_db)):
    db.delete(_get_material(db, material_id))
    db.commit()
