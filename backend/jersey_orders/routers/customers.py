"""Customer API. Records are also created by order submissions."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..errors import NotFound
from ..security import require_admin

router = APIRouter(prefix="/customers", tags=["Customers"], dependencies=[Depends(require_admin)])


def _get_customer(db: Session, customer_id: str) -> models.Customer:
    customer = db.get(models.Customer, customer_id)
    if not customer:
        raise NotFound("Customer not found")
    return customer


@router.get("/", response_model=List[schemas.CustomerOut])
def list_customers(db: Session = Depends(get_db)):
    return db.scalars(select(models.Customer).order_by(models.Customer.joined.desc())).all()


@router.post("/", response_model=schemas.CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(payload: schemas.CustomerIn, db: Session = Depends(get_db)):
    customer = models.Customer(
        id=models.new_id(),
        status="active",
        joined=models.utcnow(),
        **payload.model_dump(),
    )
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.get("/{customer_id}", response_model=schemas.CustomerDetail)
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    customer = _get_customer(db, customer_id)
    # orders link to customers by attribute match, not by key
    order_count = db.scalar(
        select(func.count())
        .select_from(models.Order)
        .where(models.Order.customer == customer.name, models.Order.mobile == customer.phone)
    ) or 0
    detail = schemas.CustomerDetail.model_validate(customer)
    detail.order_count = order_count
    return detail


@router.put("/{customer_id}", response_model=schemas.CustomerOut)
def update_customer(customer_id: str, payload: schemas.CustomerIn, db: Session = Depends(get_db)):
    customer = _get_customer(db, customer_id)
    for field, value in payload.model_dump().items():
        setattr(customer, field, value)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: str, db: Session = Depends(get_db)):
    db.delete(_get_customer(db, customer_id))
    db.commit()
