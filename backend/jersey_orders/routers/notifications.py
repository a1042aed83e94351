"""Admin notification feed."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..security import require_admin
from ..services import notifications

router = APIRouter(prefix="/notifications", tags=["Notifications"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=schemas.NotificationList)
def list_notifications(limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)):
    return schemas.NotificationList(
        unread=notifications.count_unread(db),
        items=notifications.list_notifications(db, limit=limit),
    )


@router.post("/", response_model=schemas.NotificationOut, status_code=status.HTTP_201_CREATED)
def add_notification(payload: schemas.NotificationIn, db: Session = Depends(get_db)):
    return notifications.create_notification(db, payload.title, payload.message, type=payload.type)


@router.post("/read-all", response_model=schemas.BatchResult)
def mark_all_read(db: Session = Depends(get_db)):
    return schemas.BatchResult(affected=notifications.mark_all_read(db))


@router.delete("/", response_model=schemas.BatchResult)
def clear_all(db: Session = Depends(get_db)):
    return schemas.BatchResult(affected=notifications.clear_all(db))


@router.post("/{notification_id}/read", response_model=schemas.NotificationOut)
def mark_read(notification_id: str, db: Session = Depends(get_db)):
    return notifications.mark_read(db, notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(notification_id: str, db: Session = Depends(get_db)):
    notifications.delete_notification(db, notification_id)
