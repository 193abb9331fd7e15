from datetime import datetime
from typing import Optional

from .base import BaseSchema


class NotificationView(BaseSchema):
    id: int
    title: str
    message: str
    type: str
    read: bool
    related_id: Optional[str] = None
    link: Optional[str] = None
    created_at: datetime
