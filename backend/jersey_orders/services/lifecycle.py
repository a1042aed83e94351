"""Order/jersey lifecycle shared by the admin console and the customer portal.

Status moves ``pending -> draft <-> submitted -> completed``:

* any admin edit of an order's jerseys forces it back to ``draft`` and
  stamps ``admin_modified``;
* a customer submission moves ``pending``/``draft`` to ``submitted``;
* ``completed`` is only ever set by hand (:func:`set_status`).

``amount`` is always recomputed by counting the jersey rows instead of
being incremented, so concurrent writers converge on the same value.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotFound, OrderLocked, ValidationFailed
from ..models import (
    OPEN_STATUSES,
    Customer,
    Jersey,
    Material,
    Order,
    OrderStatus,
    display_quantity,
    new_id,
    utcnow,
)
from ..schemas import JerseyIn, OrderCreate, OrderUpdate
from .links import issue_link
from .notifications import create_notification

log = logging.getLogger("jersey_orders.lifecycle")

__all__ = [
    "Actor",
    "Submission",
    "add_jersey",
    "count_jerseys",
    "create_order",
    "delete_jersey",
    "delete_order",
    "display_quantity",
    "get_order",
    "list_jerseys",
    "recount_jerseys",
    "set_status",
    "submit_jerseys",
    "update_jersey",
    "update_order",
    "upsert_customer",
]


class Actor(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


@dataclass
class Submission:
    order: Order
    jersey_count: int
    flushed: int


# -------------- Orders --------------

def get_order(db: Session, order_id: str) -> Order:
    order = db.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def _find_material(db: Session, name: str) -> Optional[Material]:
    return db.scalars(select(Material).where(Material.name == name).limit(1)).first()


def _snapshot_material(db: Session, order: Order, name: str) -> None:
    # price is copied, later material price changes do not touch the order
    material = _find_material(db, name)
    order.material = name
    order.product = name
    order.material_id = material.id if material else None
    order.material_price = material.price if material else None


def create_order(db: Session, payload: OrderCreate, base_url: str) -> Order:
    order = Order(
        id=new_id(),
        customer=payload.customer,
        mobile=payload.mobile,
        email=payload.email,
        supplier_id=payload.supplier_id or None,
        amount=payload.amount,
        status=OrderStatus.PENDING.value,
        date=utcnow(),
    )
    _snapshot_material(db, order, payload.material)
    issue_link(order, base_url)
    db.add(order)
    db.commit()
    db.refresh(order)
    log.info("Order %s created for %s", order.id, order.customer)
    return order


def update_order(db: Session, order: Order, payload: OrderUpdate) -> Order:
    updates = payload.model_dump(exclude_unset=True)
    material = updates.pop("material", None)
    if material and material != order.material:
        _snapshot_material(db, order, material)
    for field, value in updates.items():
        if field in ("email", "supplier_id"):
            value = value or None
        elif not value:
            continue
        setattr(order, field, value)
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def set_status(db: Session, order: Order, status: OrderStatus) -> Order:
    previous = order.status
    order.status = status.value
    if status is OrderStatus.SUBMITTED and order.submitted_at is None:
        order.submitted_at = utcnow()
    db.add(order)
    db.commit()
    db.refresh(order)
    log.info("Order %s status %s -> %s (manual)", order.id, previous, order.status)
    return order


def delete_order(db: Session, order: Order) -> None:
    # jersey rows go with the order (relationship cascade)
    db.delete(order)
    db.commit()
    log.info("Order %s deleted", order.id)


# -------------- Jerseys --------------

def list_jerseys(db: Session, order_id: str) -> List[Jersey]:
    stmt = (
        select(Jersey)
        .where(Jersey.order_id == order_id)
        .order_by(Jersey.created.asc(), Jersey.id.asc())
    )
    return list(db.scalars(stmt).all())


def count_jerseys(db: Session, order_id: str) -> int:
    stmt = select(func.count()).select_from(Jersey).where(Jersey.order_id == order_id)
    return db.scalar(stmt) or 0


def recount_jerseys(db: Session, order: Order) -> int:
    """Set ``order.amount`` to the number of jersey rows currently stored."""
    amount = count_jerseys(db, order.id)
    order.amount = amount
    db.add(order)
    db.commit()
    db.refresh(order)
    return amount


def _get_jersey(db: Session, order: Order, jersey_id: str) -> Jersey:
    jersey = db.get(Jersey, jersey_id)
    if jersey is None or jersey.order_id != order.id:
        raise NotFound("Jersey not found")
    return jersey


def _guard_customer_edit(order: Order, actor: Actor) -> None:
    if actor is Actor.CUSTOMER and order.status not in OPEN_STATUSES:
        raise OrderLocked("Order already submitted. Cannot change jerseys.")


def _after_jersey_change(db: Session, order: Order, actor: Actor) -> None:
    if actor is Actor.ADMIN:
        if order.status != OrderStatus.DRAFT.value:
            log.info("Order %s status %s -> draft (admin edit)", order.id, order.status)
        order.status = OrderStatus.DRAFT.value
        order.admin_modified = utcnow()
        db.add(order)
        db.commit()
    recount_jerseys(db, order)


def add_jersey(db: Session, order: Order, fields: JerseyIn, actor: Actor = Actor.ADMIN) -> Jersey:
    _guard_customer_edit(order, actor)
    jersey = Jersey(id=new_id(), order_id=order.id, **fields.column_values())
    db.add(jersey)
    db.commit()
    db.refresh(jersey)
    _after_jersey_change(db, order, actor)
    return jersey


def update_jersey(
    db: Session,
    order: Order,
    jersey_id: str,
    fields: JerseyIn,
    actor: Actor = Actor.ADMIN,
) -> Jersey:
    _guard_customer_edit(order, actor)
    jersey = _get_jersey(db, order, jersey_id)
    for field, value in fields.column_values().items():
        setattr(jersey, field, value)
    db.add(jersey)
    db.commit()
    db.refresh(jersey)
    _after_jersey_change(db, order, actor)
    return jersey


def delete_jersey(db: Session, order: Order, jersey_id: str, actor: Actor = Actor.ADMIN) -> int:
    """Remove one jersey and return how many are left on the order."""
    _guard_customer_edit(order, actor)
    jersey = _get_jersey(db, order, jersey_id)
    db.delete(jersey)
    db.commit()
    _after_jersey_change(db, order, actor)
    return order.amount or 0


# -------------- Customer submission --------------

def submit_jerseys(db: Session, order: Order, drafts: Sequence[JerseyIn]) -> Submission:
    """Flush buffered jerseys in one batch, then recount and mark submitted.

    The buffer length is never used as the quantity: jerseys saved in an
    earlier session count too, so the amount comes from a fresh count.
    """
    if order.status not in OPEN_STATUSES:
        raise OrderLocked("Order already submitted.")
    if not drafts and count_jerseys(db, order.id) == 0:
        raise ValidationFailed("Please add at least one jersey before submitting.")

    if drafts:
        try:
            for draft in drafts:
                db.add(Jersey(id=new_id(), order_id=order.id, **draft.column_values()))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            log.exception("Batch write of %d jerseys failed for order %s", len(drafts), order.id)
            raise
        log.info("Flushed %d buffered jerseys into order %s", len(drafts), order.id)

    jersey_count = count_jerseys(db, order.id)
    previous = order.status
    order.amount = jersey_count
    order.status = OrderStatus.SUBMITTED.value
    order.submitted_at = utcnow()
    db.add(order)
    db.commit()
    db.refresh(order)
    log.info("Order %s status %s -> submitted with %d jerseys", order.id, previous, jersey_count)

    _notify_submission(db, order, jersey_count)
    _upsert_customer_quietly(db, order)
    return Submission(order=order, jersey_count=jersey_count, flushed=len(drafts))


def _notify_submission(db: Session, order: Order, jersey_count: int) -> None:
    customer_name = order.customer or "Customer"
    try:
        create_notification(
            db,
            type="success",
            title="Jersey Details Submitted",
            message=(
                f"{customer_name} has submitted {jersey_count} jersey detail(s) "
                f"for Order {order.id[:8]}"
            ),
            order_id=order.id,
            customer_name=customer_name,
            jersey_count=jersey_count,
        )
    except SQLAlchemyError:
        db.rollback()
        log.exception("Could not create submission notification for order %s", order.id)


def _upsert_customer_quietly(db: Session, order: Order) -> None:
    try:
        upsert_customer(db, order)
    except SQLAlchemyError:
        db.rollback()
        log.exception("Could not upsert customer for order %s", order.id)


def upsert_customer(db: Session, order: Order) -> Optional[Customer]:
    """Create or refresh the customer matching the order's ``(name, phone)``."""
    if not order.customer or not order.mobile:
        return None

    now = utcnow()
    stmt = (
        select(Customer)
        .where(Customer.name == order.customer, Customer.phone == order.mobile)
        .limit(1)
    )
    customer = db.scalars(stmt).first()
    if customer is None:
        customer = Customer(
            id=new_id(),
            name=order.customer,
            phone=order.mobile,
            email=order.email or "",
            status="active",
            joined=now,
        )
        db.add(customer)
    elif order.email:
        customer.email = order.email
    customer.latest_order_id = order.id
    customer.last_order_date = now
    db.commit()
    db.refresh(customer)
    return customer
