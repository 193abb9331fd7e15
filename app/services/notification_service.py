from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.notification import Notification
from app.services.tracking_errors import NotificationError

logger = logging.getLogger(__name__)

NOTIFICATION_FEED_LIMIT = 50


def build_tracking_message(
    new_status: str | None,
    last_event_status: str | None,
    last_event_location: str | None,
) -> str:
    return (
        f"Status: {new_status or 'Unknown'}. "
        f"Last event: {last_event_status or 'N/A'} at {last_event_location or 'unknown location'}."
    )


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def _create_tracking_notification(
        self,
        container_no: str,
        new_status: str | None,
        last_event_status: str | None,
        last_event_location: str | None,
    ) -> Notification:
        notification = Notification(
            title=f"Shipment Update: {container_no}",
            message=build_tracking_message(new_status, last_event_status, last_event_location),
            type="info",
            related_id=container_no,
            link=settings.TRACKING_NOTIFICATION_LINK or None,
            read=False,
        )
        try:
            self.db.add(notification)
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise NotificationError(message="Failed to create notification.") from exc
        return notification

    def emit(
        self,
        container_no: str,
        new_status: str | None,
        last_event_status: str | None,
        last_event_location: str | None,
    ) -> Notification | None:
        """
        Record a tracking change in the notifications feed.
        Never raises. Call it at a transaction boundary: a failed insert rolls
        the session back, which only discards the notification itself.
        """
        try:
            return self._create_tracking_notification(
                container_no,
                new_status,
                last_event_status,
                last_event_location,
            )
        except NotificationError as exc:
            logger.warning(
                "tracking_notification_failed container=%s error=%s",
                container_no,
                exc.__cause__ or exc,
            )
            return None

    def list_recent(self, limit: int = NOTIFICATION_FEED_LIMIT) -> list[Notification]:
        stmt = (
            select(Notification)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def mark_read(self, notification_id: int) -> bool:
        result = self.db.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)
