"""Per-user notification preferences.

These preferences are consulted by the notification filter service before an
email (for workflows with use_user_preferences) or in-app notification is
delivered to a specific user.

do_not_disturb_windows is a JSON list of objects:
    {"days": ["monday", "tuesday"], "start_time": "22:00", "end_time": "23:30"}
Times are "HH:MM" strings evaluated in the configured preferences timezone.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from alert_escalation.core.database import Base

from .enums import Severity

DEFAULT_SEVERITY_THRESHOLD = Severity.MEDIUM.value


class UserNotificationPreferences(Base):
    __tablename__ = "user_notification_preferences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    mute_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    severity_threshold: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_SEVERITY_THRESHOLD
    )
    blocked_channels: Mapped[list[str] | None] = mapped_column(JSON, nullable=True, default=list)
    do_not_disturb_windows: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSON, nullable=True, default=list
    )

    __table_args__ = (
        Index("idx_user_notification_preferences_user_org", "user_id", "organization_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserNotificationPreferences(user_id={self.user_id!r}, "
            f"mute_alerts={self.mute_alerts}, severity_threshold={self.severity_threshold!r})>"
        )
