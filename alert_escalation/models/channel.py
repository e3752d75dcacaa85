"""AlertChannel model: a configured notification destination."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from alert_escalation.core.database import Base
from alert_escalation.core.time_utils import utc_now_naive


class AlertChannel(Base):
    """Notification destination of a specific type.

    channel_type is stored as a plain string so that records with a type the
    engine has no sender for can still be loaded and reported as unsupported.

    channel_configuration holds type-specific keys, for example:
        email: {"email_address": "..."}
        webhook: {"url": "...", "headers": {...}}
        sms / whatsapp: {"phone_number": "..."}
        iot_device: {"device_endpoint": "..."}
        zapier: {"zapier_webhook_url": "..."}
        slack: {"webhook_url": "..."}
        telegram: {"chat_id": "..."}
    """

    __tablename__ = "alert_channels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    channel_type: Mapped[str] = mapped_column(String(50), nullable=False)
    channel_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    channel_configuration: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

    __table_args__ = (Index("idx_alert_channels_organization_id", "organization_id"),)

    @property
    def config(self) -> dict[str, Any]:
        """Channel configuration, never None."""
        return self.channel_configuration or {}

    def __repr__(self) -> str:
        return (
            f"<AlertChannel(id={self.id!r}, channel_type={self.channel_type!r}, "
            f"channel_name={self.channel_name!r}, is_active={self.is_active})>"
        )
