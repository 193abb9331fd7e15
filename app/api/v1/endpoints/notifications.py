from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.notification import Notification
from app.schemas.notification import NotificationView
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=list[NotificationView])
def list_notifications(db: Session = Depends(get_db)):
    return NotificationService(db).list_recent()


@router.post("/{notification_id}/read", response_model=NotificationView)
def mark_notification_read(notification_id: int, db: Session = Depends(get_db)):
    if not NotificationService(db).mark_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found.")
    db.commit()
    return db.get(Notification, notification_id)
