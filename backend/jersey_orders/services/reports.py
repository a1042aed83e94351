"""CSV exports: per-order jersey details and the admin reports.

Files are UTF-8 with a byte-order mark so spreadsheet tools pick the right
encoding; quoting is left to the ``csv`` module. Quantities go through
:func:`display_quantity` like every other render path, and ``N/A`` stands in
for missing values only here, never in the stored data.
"""

import csv
import io
import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import NotFound, ValidationFailed
from ..models import (
    Customer,
    Material,
    MaterialStatus,
    Order,
    Report,
    ReportType,
    display_quantity,
    new_id,
    utcnow,
)

log = logging.getLogger("jersey_orders.reports")

BOM = "﻿"
MISSING = "N/A"
REPORT_LABELS = {
    ReportType.SALES: "Sales",
    ReportType.CUSTOMER: "Customer",
    ReportType.INVENTORY: "Inventory",
    ReportType.FINANCIAL: "Financial",
}
JERSEY_HEADERS = ["#", "Type", "Name", "Number", "Size Category", "Size", "Sleeve", "Shorts"]


@dataclass
class CsvDocument:
    file_name: str
    content: str

    @property
    def size_kb(self) -> float:
        return round(len(self.content.encode("utf-8")) / 1024, 2)

    def encode(self) -> bytes:
        return (BOM + self.content).encode("utf-8")


def _writer(buffer: io.StringIO, **kwargs):
    return csv.writer(buffer, lineterminator="\n", **kwargs)


def _text(value) -> str:
    if value is None or value == "":
        return MISSING
    return str(value)


def _money(value) -> str:
    return f"${Decimal(value or 0):.2f}"


def _day(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def _within(day: Optional[date], date_from: Optional[date], date_to: Optional[date]) -> bool:
    if day is None:
        return date_from is None and date_to is None
    if date_from and day < date_from:
        return False
    if date_to and day > date_to:
        return False
    return True


def _revenue(order) -> Decimal:
    return display_quantity(order) * Decimal(order.material_price or 0)


def report_file_name(report_type: ReportType, today: date) -> str:
    return f"{REPORT_LABELS[report_type]}_Report_{today:%Y-%m-%d}.csv"


# -------------- Report builders --------------

def build_sales_report(orders: Iterable, date_from=None, date_to=None) -> str:
    orders = [o for o in orders if _within(_day(o.date), date_from, date_to)]
    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(["Order ID", "Customer Name", "Mobile", "Material", "Quantity", "Status", "Date", "Revenue"])

    total_revenue = Decimal(0)
    for order in orders:
        revenue = _revenue(order)
        total_revenue += revenue
        order_day = _day(order.date)
        writer.writerow([
            _text(order.id),
            _text(order.customer),
            _text(order.mobile),
            _text(order.material),
            display_quantity(order),
            order.status or "pending",
            order_day.isoformat() if order_day else MISSING,
            _money(revenue),
        ])

    average = total_revenue / len(orders) if orders else Decimal(0)
    writer.writerow([])
    writer.writerow(["Summary"])
    writer.writerow(["Total Orders", len(orders)])
    writer.writerow(["Total Revenue", _money(total_revenue)])
    writer.writerow(["Average Order Value", _money(average)])
    return buffer.getvalue()


def build_customer_report(customers: Iterable, orders: Sequence, date_from=None, date_to=None) -> str:
    customers = [c for c in customers if _within(_day(c.joined), date_from, date_to)]
    order_counts = Counter((o.customer, o.mobile) for o in orders)
    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(["Customer Name", "Email", "Phone", "Status", "Joined Date", "Total Orders"])

    for customer in customers:
        joined = _day(customer.joined)
        writer.writerow([
            _text(customer.name),
            _text(customer.email),
            _text(customer.phone),
            customer.status or "active",
            joined.isoformat() if joined else MISSING,
            order_counts[(customer.name, customer.phone)],
        ])

    writer.writerow([])
    writer.writerow(["Summary"])
    writer.writerow(["Total Customers", len(customers)])
    writer.writerow(["Active Customers", sum(1 for c in customers if c.status == "active")])
    return buffer.getvalue()


def stock_label(stock: int, low_stock_threshold: int) -> str:
    if not stock:
        return "Out of Stock"
    if stock < low_stock_threshold:
        return "Low Stock"
    return "Available"


def build_inventory_report(materials: Sequence, low_stock_threshold: int = 10) -> str:
    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(["Material Name", "Type", "Stock", "Price", "Status", "Low Stock Alert"])

    for material in materials:
        label = stock_label(material.stock, low_stock_threshold)
        writer.writerow([
            _text(material.name),
            _text(material.type),
            material.stock or 0,
            _money(material.price),
            label,
            "No" if label == "Available" else "Yes",
        ])

    total_value = sum((Decimal(m.stock or 0) * Decimal(m.price or 0) for m in materials), Decimal(0))
    writer.writerow([])
    writer.writerow(["Summary"])
    writer.writerow(["Total Materials", len(materials)])
    writer.writerow([
        "Available",
        sum(1 for m in materials if m.stock > 0 and m.status == MaterialStatus.AVAILABLE.value),
    ])
    writer.writerow(["Low Stock", sum(1 for m in materials if 0 < m.stock < low_stock_threshold)])
    writer.writerow([
        "Out of Stock",
        sum(1 for m in materials if m.stock == 0 or m.status == MaterialStatus.OUT_OF_STOCK.value),
    ])
    writer.writerow(["Total Value", _money(total_value)])
    return buffer.getvalue()


def build_financial_report(orders: Iterable, date_from=None, date_to=None, now: datetime = None) -> str:
    orders = [o for o in orders if _within(_day(o.date), date_from, date_to)]
    now = now or utcnow()
    total_revenue = sum((_revenue(o) for o in orders), Decimal(0))
    total_quantity = sum(display_quantity(o) for o in orders)
    total_orders = len(orders)
    status_counts = Counter(o.status or "pending" for o in orders)

    buffer = io.StringIO()
    writer = _writer(buffer)
    writer.writerow(["Financial Summary Report"])
    writer.writerow([f"Generated: {now:%Y-%m-%d %H:%M}"])
    if date_from:
        writer.writerow([f"Date From: {date_from.isoformat()}"])
    if date_to:
        writer.writerow([f"Date To: {date_to.isoformat()}"])
    writer.writerow([])

    writer.writerow(["Metrics", "Value"])
    writer.writerow(["Total Revenue", _money(total_revenue)])
    writer.writerow(["Total Orders", total_orders])
    writer.writerow(["Total Quantity", total_quantity])
    writer.writerow(["Average Order Value", _money(total_revenue / total_orders if total_orders else 0)])
    writer.writerow(["Average Quantity per Order", f"{(total_quantity / total_orders if total_orders else 0):.2f}"])
    writer.writerow([])

    writer.writerow(["Order Status Breakdown"])
    writer.writerow(["Status", "Count"])
    for status, count in status_counts.items():
        writer.writerow([status, count])
    return buffer.getvalue()


def build_jersey_export(order, jerseys: Sequence, today: date = None) -> CsvDocument:
    if not jerseys:
        raise ValidationFailed("No jersey details to export")
    today = today or utcnow().date()
    customer_slug = re.sub(r"[^a-z0-9]", "_", (order.customer or "customer"), flags=re.IGNORECASE).lower()
    file_name = f"jersey_details_{customer_slug}_{order.id}_{today:%Y-%m-%d}.csv"

    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(JERSEY_HEADERS)
    writer = _writer(buffer, quoting=csv.QUOTE_NONNUMERIC)
    for index, jersey in enumerate(jerseys, start=1):
        writer.writerow([
            index,
            _text(jersey.type),
            _text(jersey.name),
            _text(jersey.number),
            _text(jersey.size_category),
            _text(jersey.size),
            _text(jersey.sleeve),
            _text(jersey.shorts),
        ])
    return CsvDocument(file_name=file_name, content=buffer.getvalue())


# -------------- Persistence --------------

def render_report(
    db: Session,
    report_type: ReportType,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    low_stock_threshold: int = 10,
    today: date = None,
) -> CsvDocument:
    today = today or utcnow().date()
    orders = db.scalars(select(Order).order_by(Order.date.desc())).all()

    if report_type is ReportType.SALES:
        content = build_sales_report(orders, date_from, date_to)
    elif report_type is ReportType.CUSTOMER:
        customers = db.scalars(select(Customer).order_by(Customer.name)).all()
        content = build_customer_report(customers, orders, date_from, date_to)
    elif report_type is ReportType.INVENTORY:
        materials = db.scalars(select(Material).order_by(Material.name)).all()
        content = build_inventory_report(materials, low_stock_threshold)
    elif report_type is ReportType.FINANCIAL:
        content = build_financial_report(orders, date_from, date_to)
    else:  # pragma: no cover - guarded by the enum
        raise ValidationFailed("Invalid report type")
    return CsvDocument(file_name=report_file_name(report_type, today), content=content)


def generate_report(
    db: Session,
    report_type: ReportType,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    low_stock_threshold: int = 10,
) -> Tuple[Report, CsvDocument]:
    """Render a report and keep a record of it for the recent-reports list."""
    document = render_report(db, report_type, date_from, date_to, low_stock_threshold)
    report = Report(
        id=new_id(),
        type=report_type.value,
        date_from=date_from,
        date_to=date_to,
        file_name=document.file_name,
        size=document.size_kb,
        generated=utcnow(),
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    log.info("Generated %s report %s (%.2f KB)", report_type.value, document.file_name, document.size_kb)
    return report, document


def get_report(db: Session, report_id: str) -> Report:
    report = db.get(Report, report_id)
    if report is None:
        raise NotFound("Report not found")
    return report
