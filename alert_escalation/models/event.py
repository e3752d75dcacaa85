"""Event model for detection records produced by the detection pipeline."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from alert_escalation.core.database import Base
from alert_escalation.core.time_utils import utc_now_naive


class Event(Base):
    """Immutable detection/incident record.

    Events are written by an external detection pipeline and are read-only to
    the escalation engine.
    """

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    zone_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    camera_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Unknown")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

    __table_args__ = (
        Index("idx_events_organization_id", "organization_id"),
        Index("idx_events_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id!r}, event_type={self.event_type!r}, "
            f"severity={self.severity!r}, confidence={self.confidence})>"
        )
