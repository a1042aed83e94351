"""Live collection snapshots pushed after every commit.

The hub listens to SQLAlchemy session events: ``after_flush`` records which
tables a unit of work touched and ``after_commit`` re-reads each affected
collection and hands the complete, ordered list to every subscriber.
Consumers replace their copy wholesale instead of diffing.
"""

import logging
import threading
from collections import defaultdict
from functools import partial
from itertools import chain
from typing import Callable, Dict, List, Optional

from sqlalchemy import event, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..database import SessionLocal
from ..models import Customer, Jersey, Material, Notification, Order, Supplier
from ..schemas import CustomerOut, JerseyOut, MaterialOut, NotificationOut, OrderOut, SupplierOut

log = logging.getLogger("jersey_orders.live")

TOUCHED_KEY = "jersey_orders.touched_tables"

# collection name -> (model, record type, ordering)
COLLECTIONS = {
    "orders": (Order, OrderOut, (Order.date.desc(), Order.id)),
    "jerseys": (Jersey, JerseyOut, (Jersey.created.asc(), Jersey.id)),
    "customers": (Customer, CustomerOut, (Customer.joined.desc(), Customer.id)),
    "materials": (Material, MaterialOut, (Material.name.asc(), Material.id)),
    "suppliers": (Supplier, SupplierOut, (Supplier.name.asc(), Supplier.id)),
    "notifications": (Notification, NotificationOut, (Notification.timestamp.desc(), Notification.id)),
}

Snapshot = List
Callback = Callable[[Snapshot], None]


class Subscription:
    """Cancellable handle for one subscriber of one collection."""

    def __init__(self, hub: "SnapshotHub", collection: str, callback: Callback):
        self.collection = collection
        self.active = True
        self.error: Optional[Exception] = None
        self.deliveries = 0
        self._hub = hub
        self._callback = callback

    @property
    def healthy(self) -> bool:
        return self.active and self.error is None

    def deliver(self, snapshot: Snapshot) -> None:
        if not self.active:
            return
        try:
            self._callback(snapshot)
        except Exception as exc:
            self.error = exc
            log.exception("Subscriber of %s failed; handle marked unhealthy", self.collection)
            return
        self.deliveries += 1

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._hub.remove(self)


class SnapshotHub:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory
        self._subscribers: Dict[str, List[Subscription]] = defaultdict(list)
        self._lock = threading.RLock()
        self._attached = False

    # -------------- session events --------------

    def attach(self) -> None:
        if self._attached:
            return
        event.listen(Session, "after_flush", self._collect)
        event.listen(Session, "after_commit", self._publish_touched)
        event.listen(Session, "after_rollback", self._discard)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        event.remove(Session, "after_flush", self._collect)
        event.remove(Session, "after_commit", self._publish_touched)
        event.remove(Session, "after_rollback", self._discard)
        self._attached = False

    def _collect(self, session: Session, flush_context) -> None:
        touched = session.info.setdefault(TOUCHED_KEY, set())
        for obj in chain(session.new, session.dirty, session.deleted):
            table = getattr(obj, "__tablename__", None)
            if table in COLLECTIONS:
                touched.add(table)

    def _publish_touched(self, session: Session) -> None:
        touched = session.info.pop(TOUCHED_KEY, None)
        for collection in sorted(touched or ()):
            self.publish(collection)

    def _discard(self, session: Session) -> None:
        session.info.pop(TOUCHED_KEY, None)

    # -------------- subscriptions --------------

    def read(self, collection: str) -> Snapshot:
        """One-shot read of a whole collection as typed records."""
        model, record_type, ordering = COLLECTIONS[collection]
        with self._session_factory() as db:
            rows = db.scalars(select(model).order_by(*ordering)).all()
            return [record_type.model_validate(row) for row in rows]

    def subscribe(self, collection: str, callback: Callback) -> Subscription:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        subscription = Subscription(self, collection, callback)
        with self._lock:
            self._subscribers[collection].append(subscription)
        try:
            snapshot = self.read(collection)
        except SQLAlchemyError as exc:
            subscription.error = exc
            log.exception("Initial %s snapshot failed", collection)
            return subscription
        subscription.deliver(snapshot)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            handles = self._subscribers.get(subscription.collection, [])
            if subscription in handles:
                handles.remove(subscription)

    def subscriber_count(self, collection: str) -> int:
        with self._lock:
            return len(self._subscribers.get(collection, []))

    def publish(self, collection: str) -> None:
        with self._lock:
            handles = [s for s in self._subscribers.get(collection, []) if s.active]
        if not handles:
            return
        try:
            snapshot = self.read(collection)
        except SQLAlchemyError as exc:
            log.exception("Could not read %s snapshot for subscribers", collection)
            for subscription in handles:
                subscription.error = exc
            return
        for subscription in handles:
            subscription.deliver(snapshot)


class AppContext:
    """Per-process handles to every live collection.

    Built on startup and torn down on shutdown. Reads go to the last pushed
    snapshot, or to a one-shot query when the handle is missing or failed.
    """

    def __init__(self, hub: SnapshotHub = None, collections=tuple(COLLECTIONS)):
        self.hub = hub or SnapshotHub()
        self.collections = tuple(collections)
        self.subscriptions: Dict[str, Subscription] = {}
        self.snapshots: Dict[str, Snapshot] = {}

    def start(self) -> "AppContext":
        self.hub.attach()
        for name in self.collections:
            self.subscriptions[name] = self.hub.subscribe(name, partial(self._store, name))
        log.info("Live context started for %s", ", ".join(self.collections))
        return self

    def _store(self, name: str, snapshot: Snapshot) -> None:
        self.snapshots[name] = snapshot

    def current(self, name: str) -> Snapshot:
        subscription = self.subscriptions.get(name)
        if subscription is None or not subscription.healthy or name not in self.snapshots:
            return self.hub.read(name)
        return self.snapshots[name]

    @property
    def orders(self) -> List[OrderOut]:
        return self.current("orders")

    @property
    def customers(self) -> List[CustomerOut]:
        return self.current("customers")

    @property
    def materials(self) -> List[MaterialOut]:
        return self.current("materials")

    @property
    def suppliers(self) -> List[SupplierOut]:
        return self.current("suppliers")

    @property
    def notifications(self) -> List[NotificationOut]:
        return self.current("notifications")

    def teardown(self) -> None:
        for subscription in self.subscriptions.values():
            subscription.cancel()
        self.subscriptions.clear()
        self.snapshots.clear()
        self.hub.detach()
        log.info("Live context torn down")
