"""Admin order API, including the per-order jersey sub-collection."""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..security import require_admin
from ..services import lifecycle
from ..services.links import resolve_base_url
from ..services.reports import build_jersey_export
from .reports import csv_response

router = APIRouter(prefix="/orders", tags=["Orders"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=schemas.PaginatedOrders)
def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=500),
    status_filter: Optional[models.OrderStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, alias="q"),
    db: Session = Depends(get_db),
):
    stmt = select(models.Order)
    count_stmt = select(func.count()).select_from(models.Order)

    if status_filter:
        stmt = stmt.where(models.Order.status == status_filter.value)
        count_stmt = count_stmt.where(models.Order.status == status_filter.value)
    if search:
        pattern = f"%{search.strip()}%"
        condition = or_(models.Order.customer.ilike(pattern), models.Order.mobile.ilike(pattern))
        stmt = stmt.where(condition)
        count_stmt = count_stmt.where(condition)

    total = db.scalar(count_stmt) or 0
    items = db.scalars(stmt.order_by(models.Order.date.desc()).offset(skip).limit(limit)).all()
    return schemas.PaginatedOrders(total=total, items=items)


@router.post("/", response_model=schemas.OrderOut, status_code=status.HTTP_201_CREATED)
def create_order(payload: schemas.OrderCreate, request: Request, db: Session = Depends(get_db)):
    return lifecycle.create_order(db, payload, resolve_base_url(request.base_url))


@router.get("/{order_id}", response_model=schemas.OrderDetail)
def get_order(order_id: str, db: Session = Depends(get_db)):
    order = lifecycle.get_order(db, order_id)
    detail = schemas.OrderDetail.model_validate(order)
    detail.jerseys = [schemas.JerseyOut.model_validate(j) for j in lifecycle.list_jerseys(db, order_id)]
    return detail


@router.put("/{order_id}", response_model=schemas.OrderOut)
def update_order(order_id: str, payload: schemas.OrderUpdate, db: Session = Depends(get_db)):
    order = lifecycle.get_order(db, order_id)
    return lifecycle.update_order(db, order, payload)


@router.put("/{order_id}/status", response_model=schemas.OrderOut)
def change_status(order_id: str, payload: schemas.StatusUpdate, db: Session = Depends(get_db)):
    order = lifecycle.get_order(db, order_id)
    return lifecycle.set_status(db, order, payload.status)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: str, db: Session = Depends(get_db)):
    lifecycle.delete_order(db, lifecycle.get_order(db, order_id))


@router.post("/{order_id}/recount", response_model=schemas.RecountOut)
def recount(order_id: str, db: Session = Depends(get_db)):
    order = lifecycle.get_order(db, order_id)
    amount = lifecycle.recount_jerseys(db, order)
    return schemas.RecountOut(order_id=order.id, amount=amount)


# -------------- Jerseys --------------

@router.get("/{order_id}/jerseys", response_model=List[schemas.JerseyOut])
def list_jerseys(order_id: str, db: Session = Depends(get_db)):
    lifecycle.get_order(db, order_id)
    return lifecycle.list_jerseys(db, order_id)


@router.get("/{order_id}/jerseys/export")
def export_jerseys(order_id: str, db: Session = Depends(get_db)) -> Response:
    order = lifecycle.get_order(db, order_id)
    return csv_response(build_jersey_export(order, lifecycle.list_jerseys(db, order_id)))


@router.post("/{order_id}/jerseys", response_model=schemas.JerseyOut, status_code=status.HTTP_201_CREATED)
def add_jersey(order_id: str, payload: dict = Body(...), db: Session = Depends(get_db)):
    order = lifecycle.get_order(db, order_id)
    fields = schemas.parse_model(schemas.JerseyIn, payload)
    return lifecycle.add_jersey(db, order, fields, actor=lifecycle.Actor.ADMIN)


@router.put("/{order_id}/jerseys/{jersey_id}", response_model=schemas.JerseyOut)
def update_jersey(order_id: str, jersey_id: str, payload: dict = Body(...), db: Session = Depends(get_db)):
    order = lifecycle.get_order(db, order_id)
    fields = schemas.parse_model(schemas.JerseyIn, payload)
    return lifecycle.update_jersey(db, order, jersey_id, fields, actor=lifecycle.Actor.ADMIN)


@router.delete("/{order_id}/jerseys/{jersey_id}", response_model=schemas.RecountOut)
def delete_jersey(order_id: str, jersey_id: str, db: Session = Depends(get_db)):
    order = lifecycle.get_order(db, order_id)
    remaining = lifecycle.delete_jersey(db, order, jersey_id, actor=lifecycle.Actor.ADMIN)
    return schemas.RecountOut(order_id=order.id, amount=remaining)
