"""Pydantic schemas for request/response bodies.

JSON payloads use camelCase field names (``sizeCategory``, ``linkToken``,
``latestOrderId`` ...); snake_case names are accepted on input as well.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .errors import ValidationFailed
from .models import OrderStatus, ReportType, SupplierStatus, display_quantity

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
JERSEY_NUMBER_PATTERN = re.compile(r"^[0-9]+$")
JERSEY_FIELDS = ("type", "name", "number", "size_category", "size", "sleeve", "shorts")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def validation_message(exc: ValidationError) -> str:
    """First human readable message of a pydantic error, without the prefix."""
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    message = errors[0].get("msg", "Invalid input")
    return message.removeprefix("Value error, ")


def parse_model(model, data):
    """Validate ``data`` against ``model``, reporting failures as ``ValidationFailed``."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed(validation_message(exc)) from exc


def _require_text(value, message: str = "Please fill in all required fields") -> str:
    value = "" if value is None else str(value).strip()
    if not value:
        raise ValueError(message)
    return value


def _optional_email(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return None
    if not is_valid_email(value):
        raise ValueError("Please enter a valid email address")
    return value


def _required_email(value: str) -> str:
    value = _require_text(value)
    if not is_valid_email(value):
        raise ValueError("Please enter a valid email address")
    return value


def _required_field(value) -> str:
    return _require_text(value)


RequiredText = Annotated[str, AfterValidator(_required_field)]
RequiredEmail = Annotated[str, AfterValidator(_required_email)]
OptionalEmail = Annotated[Optional[str], AfterValidator(_optional_email)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -------------- Jerseys --------------

class JerseyBase(CamelModel):
    type: str = Field(..., max_length=64, description="Jersey type (home, away, goalkeeper ...)")
    name: str = Field(..., max_length=120, description="Name printed on the back")
    number: str = Field(..., max_length=16, description="Numeric jersey number")
    size_category: str = Field(..., max_length=32)
    size: str = Field(..., max_length=16)
    sleeve: str = Field(..., max_length=32)
    shorts: str = Field(..., max_length=32)


class JerseyIn(JerseyBase):
    """One jersey as typed into a form; missing fields count as blank."""

    @model_validator(mode="before")
    @classmethod
    def _blank_missing(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for field in JERSEY_FIELDS:
            alias = to_camel(field)
            key = alias if alias in data else field
            value = data.get(key)
            data[key] = "" if value is None else str(value).strip()
        return data

    @model_validator(mode="after")
    def _check_fields(self):
        if any(not getattr(self, field) for field in JERSEY_FIELDS):
            raise ValueError("Please fill in all required fields")
        if not JERSEY_NUMBER_PATTERN.match(self.number):
            raise ValueError("Jersey number must contain numbers only")
        return self

    def column_values(self) -> dict:
        return {field: getattr(self, field) for field in JERSEY_FIELDS}


class JerseyOut(JerseyBase):
    id: str
    order_id: str
    created: datetime


# -------------- Orders --------------

class OrderCreate(CamelModel):
    customer: RequiredText = Field(..., max_length=120)
    mobile: RequiredText = Field(..., max_length=32)
    email: OptionalEmail = Field(None, max_length=255)
    material: RequiredText = Field(..., max_length=120, description="Material name, snapshotted at creation")
    supplier_id: Optional[str] = Field(None, max_length=32)
    amount: Optional[int] = Field(None, ge=1, description="Requested quantity before jerseys are entered")


class OrderUpdate(CamelModel):
    customer: Optional[str] = Field(None, max_length=120)
    mobile: Optional[str] = Field(None, max_length=32)
    email: OptionalEmail = Field(None, max_length=255)
    material: Optional[str] = Field(None, max_length=120)
    supplier_id: Optional[str] = Field(None, max_length=32)


class OrderOut(CamelModel):
    id: str
    customer: str
    mobile: str
    email: Optional[str] = None
    material: str
    product: str
    material_id: Optional[str] = None
    material_price: Optional[Decimal] = None
    supplier_id: Optional[str] = None
    amount: Optional[int] = None
    status: OrderStatus
    date: datetime
    customer_link: Optional[str] = None
    link_token: Optional[str] = None
    admin_modified: Optional[datetime] = None
    submitted_at: Optional[datetime] = None

    @computed_field(alias="displayQuantity")
    @property
    def display_quantity(self) -> int:
        return display_quantity(self)


class OrderDetail(OrderOut):
    jerseys: List[JerseyOut] = []


class PaginatedOrders(BaseModel):
    total: int
    items: List[OrderOut]


class StatusUpdate(BaseModel):
    status: OrderStatus


class RecountOut(CamelModel):
    order_id: str
    amount: int


# -------------- Customer portal --------------

class PortalOrderView(CamelModel):
    order_id: str
    customer: str
    material: str
    status: OrderStatus
    display_quantity: int
    date: datetime
    can_edit: bool
    show_entry_form: bool
    jerseys: List[JerseyOut] = []


class SubmissionIn(BaseModel):
    jerseys: List[JerseyIn] = []


class SubmissionOut(CamelModel):
    order_id: str
    status: OrderStatus
    amount: int


class PortalDeleteOut(CamelModel):
    remaining: int
    show_entry_form: bool


# -------------- Customers --------------

class CustomerIn(CamelModel):
    name: RequiredText = Field(..., max_length=120)
    email: RequiredEmail = Field(..., max_length=255)
    phone: RequiredText = Field(..., max_length=32)


class CustomerOut(CamelModel):
    id: str
    name: str
    phone: str
    email: str
    status: str
    joined: datetime
    latest_order_id: Optional[str] = None
    last_order_date: Optional[datetime] = None


class CustomerDetail(CustomerOut):
    order_count: int = 0


# -------------- Materials / suppliers --------------

class MaterialIn(CamelModel):
    name: RequiredText = Field(..., max_length=120)
    type: RequiredText = Field(..., max_length=64)
    price: Decimal = Field(..., gt=0)
    stock: int = Field(..., ge=0)


class MaterialOut(CamelModel):
    id: str
    name: str
    type: str
    price: Decimal
    stock: int
    status: str


class SupplierIn(CamelModel):
    name: RequiredText = Field(..., max_length=120)
    email: RequiredEmail = Field(..., max_length=255)
    status: SupplierStatus = SupplierStatus.ACTIVE
    location: RequiredText = Field(..., max_length=120)


class SupplierOut(CamelModel):
    id: str
    name: str
    email: str
    status: SupplierStatus
    location: str


class SupplierEmailDraft(CamelModel):
    to: str
    subject: str
    message: str
    order_count: int


class SupplierEmailIn(CamelModel):
    from_name: RequiredText = Field(..., max_length=120)
    from_email: RequiredEmail = Field(..., max_length=255)
    subject: RequiredText = Field(..., max_length=200)
    message: Optional[str] = None
    to: Optional[str] = None


# -------------- Designs / reports / notifications / profile --------------

class DesignIn(CamelModel):
    name: RequiredText = Field(..., max_length=120)
    image: RequiredText = Field(..., description="Canvas export as a data URL")


class DesignOut(CamelModel):
    id: str
    name: str
    image: str
    created: datetime


class ReportRequest(CamelModel):
    type: ReportType = ReportType.SALES
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class ReportOut(CamelModel):
    id: str
    type: ReportType
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    file_name: str
    size: float
    generated: datetime


class NotificationIn(CamelModel):
    type: str = Field("info", max_length=16)
    title: RequiredText = Field(..., max_length=200)
    message: RequiredText


class NotificationOut(CamelModel):
    id: str
    type: str
    title: str
    message: str
    read: bool
    timestamp: datetime
    order_id: Optional[str] = None
    customer_name: Optional[str] = None
    jersey_count: Optional[int] = None


class NotificationList(BaseModel):
    unread: int
    items: List[NotificationOut]


class BatchResult(BaseModel):
    affected: int


class ProfileIn(CamelModel):
    full_name: str = Field(..., max_length=120)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(None, max_length=32)

    @field_validator("full_name")
    @classmethod
    def _name(cls, value):
        return _require_text(value, message="Full name is required")

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value):
        value = _require_text(value, message="Email is required")
        if not is_valid_email(value):
            raise ValueError("Please enter a valid email address")
        return value


class ProfileOut(CamelModel):
    full_name: str
    email: str
    phone: Optional[str] = None
    updated: datetime


class DashboardStats(BaseModel):
    total_orders: int
    by_status: dict
    pending_orders: int
    completed_orders: int
    active_customers: int
    available_materials: int
    low_stock_materials: int
    out_of_stock_materials: int
    suppliers_by_status: dict
    unread_notifications: int
