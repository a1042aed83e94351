"""One-off helper to bring a legacy orders table up to the lifecycle schema.

Adds the link/audit columns when missing and mints a customer link for
every order that has none yet.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from jersey_orders.config import get_settings  # noqa: E402
from jersey_orders.database import engine  # noqa: E402
from jersey_orders.services.links import build_customer_link, mint_link_token  # noqa: E402

DEFAULT_BASE_URL = "http://localhost:8000"


@dataclass(frozen=True)
class ColumnPatch:
    name: str
    definition: str
    backfill_sql: str | None = None


COLUMN_PATCHES: tuple[ColumnPatch, ...] = (
    ColumnPatch(
        name="status",
        definition="VARCHAR(16)",
        backfill_sql="UPDATE orders SET status = 'pending' WHERE status IS NULL",
    ),
    ColumnPatch(name="customer_link", definition="TEXT"),
    ColumnPatch(name="link_token", definition="VARCHAR(64)"),
    ColumnPatch(name="admin_modified", definition="TIMESTAMP WITH TIME ZONE"),
    ColumnPatch(name="submitted_at", definition="TIMESTAMP WITH TIME ZONE"),
    ColumnPatch(name="material_id", definition="VARCHAR(32)"),
    ColumnPatch(name="material_price", definition="NUMERIC(10, 2)"),
    ColumnPatch(name="supplier_id", definition="VARCHAR(32)"),
)


def existing_columns(conn: Connection) -> set[str]:
    return {column["name"] for column in inspect(conn).get_columns("orders")}


def apply_column_patch(conn: Connection, patch: ColumnPatch, columns: set[str]) -> None:
    if patch.name in columns:
        print(f"✓ Column {patch.name} already exists, skipping add.")
    else:
        conn.execute(text(f"ALTER TABLE orders ADD COLUMN {patch.name} {patch.definition}"))
        print(f"+ Added column {patch.name} ({patch.definition}).")

    if patch.backfill_sql:
        conn.execute(text(patch.backfill_sql))


def backfill_links(conn: Connection, base_url: str) -> int:
    rows = conn.execute(text("SELECT id FROM orders WHERE link_token IS NULL OR link_token = ''")).all()
    for (order_id,) in rows:
        token = mint_link_token()
        conn.execute(
            text("UPDATE orders SET link_token = :token, customer_link = :link WHERE id = :id"),
            {"token": token, "link": build_customer_link(base_url, order_id, token), "id": order_id},
        )
    return len(rows)


def run() -> None:
    base_url = get_settings().public_base_url or DEFAULT_BASE_URL
    with engine.begin() as conn:
        columns = existing_columns(conn)
        for patch in COLUMN_PATCHES:
            apply_column_patch(conn, patch, columns)
        minted = backfill_links(conn, base_url)
    print(f"+ Minted customer links for {minted} orders.")
    print("Schema upgrade completed.")


if __name__ == "__main__":
    run()
