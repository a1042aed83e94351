from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from jersey_orders import models
from jersey_orders.errors import NotFound, OrderLocked, ValidationFailed
from jersey_orders.schemas import JerseyIn, OrderCreate, OrderUpdate
from jersey_orders.services import lifecycle
from jersey_orders.services.lifecycle import Actor

BASE_URL = "http://testserver"
JERSEY = {
    "type": "Player",
    "name": "SANTOS",
    "number": "10",
    "sizeCategory": "Adult",
    "size": "M",
    "sleeve": "Short",
    "shorts": "Yes",
}


def _jersey(**overrides) -> JerseyIn:
    return JerseyIn.model_validate({**JERSEY, **overrides})


def _order(db, customer="Harbor City FC", mobile="0917-555-0101", email=None, material="Dri-Fit"):
    payload = OrderCreate(customer=customer, mobile=mobile, email=email, material=material)
    return lifecycle.create_order(db, payload, BASE_URL)


def _jersey_rows(db, order_id) -> int:
    return db.scalar(select(func.count()).select_from(models.Jersey).where(models.Jersey.order_id == order_id))


def test_create_order_starts_pending_with_link(db):
    material = models.Material(id=models.new_id(), name="Dri-Fit", type="Polyester", price=Decimal("12.50"), stock=5)
    db.add(material)
    db.commit()

    order = _order(db)

    assert order.status == "pending"
    assert order.amount is None
    assert order.material_id == material.id
    assert order.material_price == Decimal("12.50")
    assert len(order.link_token) >= 32
    assert order.customer_link.startswith(f"{BASE_URL}/customer?orderId={order.id}&token=")


def test_material_price_is_a_snapshot(db):
    material = models.Material(id=models.new_id(), name="Mesh", type="Mesh", price=Decimal("9.00"), stock=5)
    db.add(material)
    db.commit()
    order = _order(db, material="Mesh")

    material.price = Decimal("15.00")
    db.commit()
    db.refresh(order)

    assert order.material_price == Decimal("9.00")


def test_update_order_never_touches_amount_or_status(db):
    order = _order(db)
    lifecycle.add_jersey(db, order, _jersey())

    updated = lifecycle.update_order(db, order, OrderUpdate(customer="Harbor City United", email="a@b.co"))

    assert updated.customer == "Harbor City United"
    assert updated.email == "a@b.co"
    assert updated.amount == 1
    assert updated.status == "draft"


def test_recount_is_idempotent(db):
    order = _order(db)
    for number in ("1", "2", "3"):
        lifecycle.add_jersey(db, order, _jersey(number=number))

    results = {lifecycle.recount_jerseys(db, order) for _ in range(5)}

    assert results == {3}
    assert order.amount == _jersey_rows(db, order.id)


@pytest.mark.parametrize(
    "status,expected",
    [("pending", 0), ("draft", 0), ("submitted", 7), ("completed", 7), (models.OrderStatus.DRAFT, 0)],
)
def test_display_quantity_substitution(status, expected):
    order = SimpleNamespace(status=status, amount=7)
    assert models.display_quantity(order) == expected
    # the stored value is left alone
    assert order.amount == 7


def test_admin_edit_forces_draft_on_submitted_order(db):
    order = _order(db)
    lifecycle.submit_jerseys(db, order, [_jersey(), _jersey(number="11")])
    assert order.status == "submitted"
    assert order.admin_modified is None

    jersey_id = lifecycle.list_jerseys(db, order.id)[0].id
    lifecycle.update_jersey(db, order, jersey_id, _jersey(number="99"), actor=Actor.ADMIN)

    assert order.status == "draft"
    assert order.admin_modified is not None
    assert order.amount == 2


def test_admin_delete_also_forces_draft(db):
    order = _order(db)
    lifecycle.submit_jerseys(db, order, [_jersey(), _jersey(number="11")])
    jersey_id = lifecycle.list_jerseys(db, order.id)[0].id

    remaining = lifecycle.delete_jersey(db, order, jersey_id)

    assert remaining == 1
    assert order.status == "draft"
    assert order.admin_modified is not None


def test_customer_edits_keep_status_and_recount(db):
    order = _order(db)
    jersey = lifecycle.add_jersey(db, order, _jersey(), actor=Actor.CUSTOMER)

    assert order.status == "pending"
    assert order.admin_modified is None
    assert order.amount == 1

    lifecycle.delete_jersey(db, order, jersey.id, actor=Actor.CUSTOMER)
    assert order.amount == 0


def test_customer_cannot_touch_submitted_order(db):
    order = _order(db)
    lifecycle.submit_jerseys(db, order, [_jersey()])
    jersey_id = lifecycle.list_jerseys(db, order.id)[0].id

    with pytest.raises(OrderLocked):
        lifecycle.add_jersey(db, order, _jersey(), actor=Actor.CUSTOMER)
    with pytest.raises(OrderLocked):
        lifecycle.delete_jersey(db, order, jersey_id, actor=Actor.CUSTOMER)
    with pytest.raises(OrderLocked):
        lifecycle.submit_jerseys(db, order, [_jersey()])


def test_empty_submission_is_rejected(db):
    order = _order(db)
    with pytest.raises(ValidationFailed):
        lifecycle.submit_jerseys(db, order, [])
    assert order.status == "pending"


def test_submission_creates_notification(db):
    order = _order(db)
    lifecycle.submit_jerseys(db, order, [_jersey(), _jersey(number="2")])

    notification = db.scalars(select(models.Notification)).one()
    assert notification.title == "Jersey Details Submitted"
    assert notification.order_id == order.id
    assert notification.jersey_count == 2
    assert f"Order {order.id[:8]}" in notification.message


def test_side_effect_failures_do_not_block_submission(db, monkeypatch):
    def broken(*args, **kwargs):
        raise SQLAlchemyError("side effect down")

    monkeypatch.setattr(lifecycle, "create_notification", broken)
    monkeypatch.setattr(lifecycle, "upsert_customer", broken)
    order = _order(db)

    result = lifecycle.submit_jerseys(db, order, [_jersey()])

    assert result.order.status == "submitted"
    assert result.jersey_count == 1
    assert db.scalar(select(func.count()).select_from(models.Notification)) == 0


def test_customer_upsert_dedups_on_name_and_phone(db):
    first = _order(db, email="coach@harbor.example")
    second = _order(db)
    lifecycle.submit_jerseys(db, first, [_jersey()])
    lifecycle.submit_jerseys(db, second, [_jersey()])

    customers = db.scalars(select(models.Customer)).all()
    assert len(customers) == 1
    assert customers[0].latest_order_id == second.id
    # an order without email keeps the stored one
    assert customers[0].email == "coach@harbor.example"
    assert customers[0].status == "active"


def test_customer_upsert_overwrites_email_when_present(db):
    lifecycle.submit_jerseys(db, _order(db, email="old@harbor.example"), [_jersey()])
    lifecycle.submit_jerseys(db, _order(db, email="new@harbor.example"), [_jersey()])

    customer = db.scalars(select(models.Customer)).one()
    assert customer.email == "new@harbor.example"


def test_delete_order_cascades_to_jerseys(db):
    order = _order(db)
    lifecycle.add_jersey(db, order, _jersey())
    order_id = order.id

    lifecycle.delete_order(db, order)

    assert db.get(models.Order, order_id) is None
    assert _jersey_rows(db, order_id) == 0


def test_unknown_jersey_is_not_found(db):
    order = _order(db)
    other = _order(db, customer="Northside Hoops")
    jersey = lifecycle.add_jersey(db, other, _jersey())

    with pytest.raises(NotFound):
        lifecycle.update_jersey(db, order, jersey.id, _jersey())


def test_manual_status_is_the_only_way_to_completed(db):
    order = _order(db)
    lifecycle.submit_jerseys(db, order, [_jersey()])

    lifecycle.set_status(db, order, models.OrderStatus.COMPLETED)

    assert order.status == "completed"
    assert models.display_quantity(order) == 1


def test_full_round_trip_scenario(db):
    order = _order(db)
    assert order.status == "pending" and order.amount is None

    lifecycle.add_jersey(db, order, _jersey(number="1"))
    lifecycle.add_jersey(db, order, _jersey(number="2"))
    assert (order.status, order.amount) == ("draft", 2)

    lifecycle.submit_jerseys(db, order, [_jersey(number=str(n)) for n in (3, 4, 5)])
    assert (order.status, order.amount) == ("submitted", 5)
    assert _jersey_rows(db, order.id) == 5

    first = lifecycle.list_jerseys(db, order.id)[0]
    lifecycle.update_jersey(db, order, first.id, _jersey(number="77"))
    assert (order.status, order.amount) == ("draft", 5)

    lifecycle.submit_jerseys(db, order, [])
    assert (order.status, order.amount) == ("submitted", 5)
