"""AlertNotification model: the audit record of one delivery attempt.

One record is written per event x workflow x channel (x user, for channels that
fan out to users). Records are created and mutated only by the escalation
engine.

Status Lifecycle:
    - Immediate dispatches are created directly as sent, skipped or failed.
    - Delayed escalation steps are created as pending with scheduled_for set,
      and later updated in place (by id) to sent, skipped or failed by the
      scheduled step processor. Terminal records are never reopened.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from alert_escalation.core.database import Base
from alert_escalation.core.time_utils import utc_now_naive

from .enums import NotificationStatus


class AlertNotification(Base):
    __tablename__ = "alert_notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # Null for channels that are not user-specific (webhooks, SMS, ...)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    event_id: Mapped[str] = mapped_column(String(36), nullable=False)
    workflow_id: Mapped[str] = mapped_column(String(36), nullable=False)
    channel_id: Mapped[str] = mapped_column(String(36), nullable=False)
    notification_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=NotificationStatus.PENDING.value
    )
    delivery_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Snapshot of the payload actually transmitted
    message_content: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    escalation_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False
    )

    __table_args__ = (
        Index("idx_alert_notifications_status_scheduled", "status", "scheduled_for"),
        Index("idx_alert_notifications_event_id", "event_id"),
        Index("idx_alert_notifications_user_id", "user_id"),
        Index("idx_alert_notifications_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AlertNotification(id={self.id!r}, channel_id={self.channel_id!r}, "
            f"status={self.status!r}, escalation_step={self.escalation_step})>"
        )
