"""Supplier order summaries for the email flow."""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Order, Supplier, display_quantity
from ..schemas import SupplierEmailDraft

SIGNATURE = "Best regards,\nJersey Orders Team"


def _or_missing(value) -> str:
    return str(value) if value not in (None, "") else "N/A"


def compose_supplier_message(supplier: Supplier, orders: Sequence[Order]) -> str:
    lines = [f"Dear {supplier.name},", ""]
    if orders:
        lines += ["Here is a summary of orders assigned to you:", ""]
        for order in orders:
            lines += [
                f"Order ID: {order.id}",
                f"Customer: {_or_missing(order.customer)}",
                f"Order Date: {order.date:%Y-%m-%d}" if order.date else "Order Date: N/A",
                f"Status: {_or_missing(order.status)}",
                f"Material: {_or_missing(order.product or order.material)}",
                f"Quantity: {display_quantity(order)}",
                "---",
                "",
            ]
        lines += [f"Total Orders: {len(orders)}", ""]
    return "\n".join(lines) + SIGNATURE


def supplier_orders(db: Session, supplier_id: str) -> list:
    stmt = select(Order).where(Order.supplier_id == supplier_id).order_by(Order.date.desc())
    return list(db.scalars(stmt).all())


def draft_supplier_email(db: Session, supplier: Supplier) -> SupplierEmailDraft:
    orders = supplier_orders(db, supplier.id)
    return SupplierEmailDraft(
        to=supplier.email,
        subject=f"Order summary for {supplier.name}",
        message=compose_supplier_message(supplier, orders),
        order_count=len(orders),
    )
