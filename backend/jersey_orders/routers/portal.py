"""Token-gated customer portal API.

Every route takes ``?token=`` and goes through :func:`verify_portal_access`
before anything else; a failed check returns no order data at all.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..models import OPEN_STATUSES, Order, display_quantity
from ..services import lifecycle
from ..services.links import verify_portal_access

router = APIRouter(prefix="/portal/orders", tags=["Customer portal"])


def portal_view(db: Session, order: Order) -> schemas.PortalOrderView:
    jerseys = lifecycle.list_jerseys(db, order.id)
    can_edit = order.status in OPEN_STATUSES
    return schemas.PortalOrderView(
        order_id=order.id,
        customer=order.customer,
        material=order.product or order.material,
        status=order.status,
        display_quantity=display_quantity(order),
        date=order.date,
        can_edit=can_edit,
        show_entry_form=can_edit,
        jerseys=[schemas.JerseyOut.model_validate(j) for j in jerseys],
    )


@router.get("/{order_id}", response_model=schemas.PortalOrderView)
def get_portal_order(order_id: str, token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    order = verify_portal_access(db, order_id, token)
    return portal_view(db, order)


@router.post("/{order_id}/submit", response_model=schemas.SubmissionOut)
def submit(
    order_id: str,
    token: Optional[str] = Query(None),
    payload: dict = Body(...),
    db: Session = Depends(get_db),
):
    order = verify_portal_access(db, order_id, token)
    submission = schemas.parse_model(schemas.SubmissionIn, payload)
    result = lifecycle.submit_jerseys(db, order, submission.jerseys)
    return schemas.SubmissionOut(
        order_id=result.order.id,
        status=result.order.status,
        amount=result.jersey_count,
    )


@router.put("/{order_id}/jerseys/{jersey_id}", response_model=schemas.JerseyOut)
def edit_saved_jersey(
    order_id: str,
    jersey_id: str,
    token: Optional[str] = Query(None),
    payload: dict = Body(...),
    db: Session = Depends(get_db),
):
    order = verify_portal_access(db, order_id, token)
    fields = schemas.parse_model(schemas.JerseyIn, payload)
    return lifecycle.update_jersey(db, order, jersey_id, fields, actor=lifecycle.Actor.CUSTOMER)


@router.delete("/{order_id}/jerseys/{jersey_id}", response_model=schemas.PortalDeleteOut)
def delete_saved_jersey(
    order_id: str,
    jersey_id: str,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    order = verify_portal_access(db, order_id, token)
    remaining = lifecycle.delete_jersey(db, order, jersey_id, actor=lifecycle.Actor.CUSTOMER)
    return schemas.PortalDeleteOut(remaining=remaining, show_entry_form=remaining == 0)
