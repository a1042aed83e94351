"""Admin notifications: creation plus the batched read/clear operations."""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import Notification, new_id, utcnow

log = logging.getLogger("jersey_orders.notifications")


def create_notification(
    db: Session,
    title: str,
    message: str,
    type: str = "info",
    order_id: Optional[str] = None,
    customer_name: Optional[str] = None,
    jersey_count: Optional[int] = None,
) -> Notification:
    notification = Notification(
        id=new_id(),
        type=type or "info",
        title=title,
        message=message,
        read=False,
        timestamp=utcnow(),
        order_id=order_id,
        customer_name=customer_name,
        jersey_count=jersey_count,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def list_notifications(db: Session, limit: int = 50) -> List[Notification]:
    stmt = select(Notification).order_by(Notification.timestamp.desc()).limit(limit)
    return list(db.scalars(stmt).all())


def count_unread(db: Session) -> int:
    stmt = select(func.count()).select_from(Notification).where(Notification.read.is_(False))
    return db.scalar(stmt) or 0


def get_notification(db: Session, notification_id: str) -> Notification:
    notification = db.get(Notification, notification_id)
    if notification is None:
        raise NotFound("Notification not found")
    return notification


def mark_read(db: Session, notification_id: str) -> Notification:
    notification = get_notification(db, notification_id)
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session) -> int:
    """Mark every unread notification read in a single commit."""
    unread = db.scalars(select(Notification).where(Notification.read.is_(False))).all()
    for notification in unread:
        notification.read = True
    if unread:
        db.commit()
        log.info("Marked %d notifications read", len(unread))
    return len(unread)


def clear_all(db: Session) -> int:
    """Delete every notification in a single commit."""
    notifications = db.scalars(select(Notification)).all()
    for notification in notifications:
        db.delete(notification)
    if notifications:
        db.commit()
        log.info("Cleared %d notifications", len(notifications))
    return len(notifications)


def delete_notification(db: Session, notification_id: str) -> None:
    db.delete(get_notification(db, notification_id))
    db.commit()
