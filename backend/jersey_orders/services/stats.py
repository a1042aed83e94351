"""Dashboard KPIs computed from live collection snapshots."""

from collections import Counter
from typing import Sequence

from ..models import MaterialStatus, OrderStatus, SupplierStatus
from ..schemas import DashboardStats


def _value(status) -> str:
    return getattr(status, "value", status) or "unknown"


def compute_stats(
    orders: Sequence,
    customers: Sequence,
    materials: Sequence,
    suppliers: Sequence,
    notifications: Sequence,
    low_stock_threshold: int = 10,
) -> DashboardStats:
    by_status = Counter(_value(o.status) for o in orders)
    supplier_counts = Counter(_value(s.status) for s in suppliers)
    return DashboardStats(
        total_orders=len(orders),
        by_status={status.value: by_status.get(status.value, 0) for status in OrderStatus},
        pending_orders=by_status.get(OrderStatus.PENDING.value, 0),
        completed_orders=by_status.get(OrderStatus.COMPLETED.value, 0),
        active_customers=sum(1 for c in customers if c.status == "active"),
        available_materials=sum(
            1 for m in materials if m.stock > 0 and m.status == MaterialStatus.AVAILABLE.value
        ),
        low_stock_materials=sum(1 for m in materials if 0 < m.stock < low_stock_threshold),
        out_of_stock_materials=sum(
            1 for m in materials if m.stock == 0 or m.status == MaterialStatus.OUT_OF_STOCK.value
        ),
        suppliers_by_status={s.value: supplier_counts.get(s.value, 0) for s in SupplierStatus},
        unread_notifications=sum(1 for n in notifications if not n.read),
    )


def stats_from_context(context, low_stock_threshold: int = 10) -> DashboardStats:
    return compute_stats(
        context.orders,
        context.customers,
        context.materials,
        context.suppliers,
        context.notifications,
        low_stock_threshold,
    )
