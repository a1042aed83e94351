"""Supplier API and the supplier order-summary email."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..errors import NotFound
from ..security import require_admin
from ..services.relay_client import MailRelayClient, get_relay_client
from ..services.suppliers import draft_supplier_email

router = APIRouter(prefix="/suppliers", tags=["Suppliers"], dependencies=[Depends(require_admin)])


def _get_supplier(db: Session, supplier_id: str) -> models.Supplier:
    supplier = db.get(models.Supplier, supplier_id)
    if not supplier:
        raise NotFound("Supplier not found")
    return supplier


@router.get("/", response_model=List[schemas.SupplierOut])
def list_suppliers(db: Session = Depends(get_db)):
    return db.scalars(select(models.Supplier).order_by(models.Supplier.name)).all()


@router.post("/", response_model=schemas.SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(payload: schemas.SupplierIn, db: Session = Depends(get_db)):
    data = payload.model_dump()
    data["status"] = payload.status.value
    supplier = models.Supplier(id=models.new_id(), **data)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.put("/{supplier_id}", response_model=schemas.SupplierOut)
def update_supplier(supplier_id: str, payload: schemas.SupplierIn, db: Session = Depends(get_db)):
    supplier = _get_supplier(db, supplier_id)
    data = payload.model_dump()
    data["status"] = payload.status.value
    for field, value in data.items():
        setattr(supplier, field, value)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(supplier_id: str, db: Session = Depends(get_db)):
    db.delete(_get_supplier(db, supplier_id))
    db.commit()


@router.get("/{supplier_id}/email-draft", response_model=schemas.SupplierEmailDraft)
def email_draft(supplier_id: str, db: Session = Depends(get_db)):
    return draft_supplier_email(db, _get_supplier(db, supplier_id))


@router.post("/{supplier_id}/email")
def email_supplier(
    supplier_id: str,
    payload: schemas.SupplierEmailIn,
    db: Session = Depends(get_db),
    relay: MailRelayClient = Depends(get_relay_client),
):
    supplier = _get_supplier(db, supplier_id)
    message = payload.message or draft_supplier_email(db, supplier).message
    to = payload.to or supplier.email
    result = relay.send(payload.from_name, payload.from_email, to, payload.subject, message)
    return {"success": True, "message": result}
