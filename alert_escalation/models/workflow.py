"""AlertWorkflow model: an organization's alerting rule.

A workflow maps event conditions to an escalation policy.

Trigger Conditions (JSON object, every clause optional):
    - event_types: list of event_type tags to match
    - severity_levels: list of severity labels to match
    - confidence_gt: minimum event confidence (inclusive)
    - zones: list of zone names; when non-empty the event must carry one of them

Escalation Policy (JSON array, position = step index):
    [{"channel_ids": ["..."], "delay_minutes": 0}, ...]
    Step 0 is always dispatched immediately regardless of its delay.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from alert_escalation.core.database import Base
from alert_escalation.core.time_utils import utc_now_naive


class AlertWorkflow(Base):
    """Organization-scoped alerting rule, read-only to the engine."""

    __tablename__ = "alert_workflows"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False)
    workflow_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    trigger_conditions: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True, default=dict
    )
    escalation_policy: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSON, nullable=True, default=list
    )
    use_user_preferences: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

    __table_args__ = (
        Index("idx_alert_workflows_org_active", "organization_id", "is_active"),
    )

    def __repr__(self) -> str:
        return (
            f"<AlertWorkflow(id={self.id!r}, workflow_name={self.workflow_name!r}, "
            f"is_active={self.is_active})>"
        )
