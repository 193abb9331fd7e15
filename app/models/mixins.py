from datetime import datetime

from sqlalchemy import DateTime, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

# Actor names written to last_changed_by.
SYSTEM_ACTOR = "system@local"
TRACKING_ACTOR = "tracking@searates"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


class AuditMixin(TimestampMixin):
    """Who created the row and who touched it last (a user email or a system actor)."""

    created_by: Mapped[str] = mapped_column(
        String(255), nullable=False, default=SYSTEM_ACTOR, server_default=text(f"'{SYSTEM_ACTOR}'")
    )
    last_changed_by: Mapped[str] = mapped_column(
        String(255), nullable=False, default=SYSTEM_ACTOR, server_default=text(f"'{SYSTEM_ACTOR}'")
    )
