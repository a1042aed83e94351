"""SQLAlchemy models."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    """Status progression for orders."""
    PENDING = "pending"        # Link issued, nothing entered yet
    DRAFT = "draft"            # Jerseys being edited (by admin or customer)
    SUBMITTED = "submitted"    # Customer confirmed the jersey list
    COMPLETED = "completed"    # Closed manually by an admin


class MaterialStatus(str, Enum):
    AVAILABLE = "available"
    OUT_OF_STOCK = "out-of-stock"


class SupplierStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    DISCONTINUED = "discontinued"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=new_id)
    customer = Column(String(120), nullable=False)
    mobile = Column(String(32), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    material = Column(String(120), nullable=False)
    product = Column(String(120), nullable=False)
    material_id = Column(String(32), nullable=True)
    material_price = Column(Numeric(10, 2), nullable=True)
    supplier_id = Column(String(32), nullable=True, index=True)
    amount = Column(Integer, nullable=True)
    status = Column(String(16), nullable=False, default=OrderStatus.PENDING.value, index=True)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    customer_link = Column(Text, nullable=True)
    link_token = Column(String(64), nullable=True, unique=True)
    admin_modified = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    jerseys = relationship(
        "Jersey",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Jersey.created",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Order id={self.id} customer={self.customer!r} status={self.status}>"


class Jersey(Base):
    __tablename__ = "jerseys"

    id = Column(String(32), primary_key=True, default=new_id)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(64), nullable=False)
    name = Column(String(120), nullable=False)
    number = Column(String(16), nullable=False)
    size_category = Column(String(32), nullable=False)
    size = Column(String(16), nullable=False)
    sleeve = Column(String(32), nullable=False)
    shorts = Column(String(32), nullable=False)
    # set on flush so it reflects persistence time, not form-fill time
    created = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="jerseys")


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (Index("ix_customers_name_phone", "name", "phone"),)

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    phone = Column(String(32), nullable=False)
    email = Column(String(255), nullable=False, default="")
    status = Column(String(16), nullable=False, default="active")
    joined = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    latest_order_id = Column(String(32), nullable=True)
    last_order_date = Column(DateTime(timezone=True), nullable=True)


class Material(Base):
    __tablename__ = "materials"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False, index=True)
    type = Column(String(64), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False, default=MaterialStatus.OUT_OF_STOCK.value)


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False)
    status = Column(String(16), nullable=False, default=SupplierStatus.ACTIVE.value)
    location = Column(String(120), nullable=False)


class Design(Base):
    __tablename__ = "designs"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    image = Column(Text, nullable=False)
    created = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Report(Base):
    __tablename__ = "reports"

    id = Column(String(32), primary_key=True, default=new_id)
    type = Column(String(16), nullable=False)
    date_from = Column(Date, nullable=True)
    date_to = Column(Date, nullable=True)
    file_name = Column(String(120), nullable=False)
    size = Column(Float, nullable=False, default=0)
    generated = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(32), primary_key=True, default=new_id)
    type = Column(String(16), nullable=False, default="info")
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    order_id = Column(String(32), nullable=True)
    customer_name = Column(String(120), nullable=True)
    jersey_count = Column(Integer, nullable=True)


class ProfileSetting(Base):
    """Singleton row holding the admin profile (id is always ``profile``)."""

    __tablename__ = "settings"

    id = Column(String(32), primary_key=True, default="profile")
    full_name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    updated = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class ReportType(str, Enum):
    SALES = "sales"
    CUSTOMER = "customer"
    INVENTORY = "inventory"
    FINANCIAL = "financial"


OPEN_STATUSES = frozenset({OrderStatus.PENDING.value, OrderStatus.DRAFT.value})


def display_quantity(order) -> int:
    """Quantity shown to people: ``0`` while an order is still open for edits.

    The stored ``amount`` is never touched; every list, detail and export
    path renders through this accessor.
    """
    status = getattr(order, "status", None) or OrderStatus.PENDING.value
    status = getattr(status, "value", status)
    if status in OPEN_STATUSES:
        return 0
    return int(getattr(order, "amount", None) or 0)
