"""Load CSV seed orders (with their jerseys) into the orders table."""

from __future__ import annotations

import csv
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from jersey_orders.config import get_settings  # noqa: E402
from jersey_orders.database import Base, SessionLocal, engine  # noqa: E402
from jersey_orders import models  # noqa: E402
from jersey_orders.services.lifecycle import recount_jerseys, upsert_customer  # noqa: E402
from jersey_orders.services.links import issue_link  # noqa: E402

JERSEY_COLUMNS = ("type", "name", "number", "size_category", "size", "sleeve", "shorts")
DEFAULT_BASE_URL = "http://localhost:8000"


@dataclass
class ImportStats:
    created: int = 0
    skipped: int = 0
    jerseys: int = 0

    def __iadd__(self, other: "ImportStats") -> "ImportStats":
        self.created += other.created
        self.skipped += other.skipped
        self.jerseys += other.jerseys
        return self


def seed_order_id(reference: str) -> str:
    # stable ids make re-running the import idempotent
    return uuid.uuid5(uuid.NAMESPACE_URL, f"jersey-orders-seed:{reference}").hex


def parse_jerseys(raw: str) -> list[dict[str, str]]:
    jerseys = []
    for chunk in filter(None, (raw or "").split(";")):
        values = chunk.split("|")
        if len(values) == len(JERSEY_COLUMNS):
            jerseys.append(dict(zip(JERSEY_COLUMNS, values)))
    return jerseys


def parse_row(session, row: dict[str, str], base_url: str) -> models.Order:
    order_date = datetime.fromisoformat(row["order_date"])
    if order_date.tzinfo is None:
        order_date = order_date.replace(tzinfo=timezone.utc)
    material = session.scalars(
        select(models.Material).where(models.Material.name == row["material"]).limit(1)
    ).first()
    order = models.Order(
        id=seed_order_id(row["reference"]),
        customer=row["customer"],
        mobile=row["mobile"],
        email=row.get("email") or None,
        material=row["material"],
        product=row["material"],
        material_id=material.id if material else None,
        material_price=material.price if material else None,
        status=row["status"],
        date=order_date,
    )
    if order.status in (models.OrderStatus.SUBMITTED.value, models.OrderStatus.COMPLETED.value):
        order.submitted_at = order_date
    issue_link(order, base_url)
    return order


def import_csv(csv_path: Path, base_url: str) -> ImportStats:
    stats = ImportStats()
    with SessionLocal() as session:
        existing = set(session.scalars(select(models.Order.id)))
        with csv_path.open(newline="", encoding="utf-8") as fh:
            for row in csv.DictReader(fh):
                if seed_order_id(row["reference"]) in existing:
                    stats.skipped += 1
                    continue
                order = parse_row(session, row, base_url)
                session.add(order)
                jerseys = parse_jerseys(row.get("jerseys", ""))
                for fields in jerseys:
                    session.add(models.Jersey(id=models.new_id(), order_id=order.id, **fields))
                session.commit()
                recount_jerseys(session, order)
                if order.submitted_at:
                    upsert_customer(session, order)
                stats.created += 1
                stats.jerseys += len(jerseys)
    return stats


def main() -> None:
    csv_path = ROOT.parent / "data" / "orders_seed.csv"
    if not csv_path.exists():
        raise SystemExit(f"CSV file not found: {csv_path}")

    Base.metadata.create_all(bind=engine)
    base_url = get_settings().public_base_url or DEFAULT_BASE_URL
    stats = import_csv(csv_path, base_url)
    print(f"Created {stats.created} orders ({stats.jerseys} jerseys), skipped {stats.skipped} duplicates.")


if __name__ == "__main__":
    main()
