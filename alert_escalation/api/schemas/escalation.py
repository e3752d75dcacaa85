"""Pydantic schemas for escalation API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "EscalationReportResponse",
    "NotificationListResponse",
    "NotificationResponse",
    "SweepReportResponse",
]


class EscalationReportResponse(BaseModel):
    """Result of processing one event."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "event_id": "5b1f0c0e-9d2a-4c55-8a47-0f4a1f7b9a10",
                "workflows_evaluated": 3,
                "workflows_matched": 1,
                "matched_workflow_ids": ["d0c7..."],
                "channels_dispatched": 2,
                "channels_skipped": 0,
                "channels_failed": 0,
                "notifications_scheduled": 1,
                "failed_workflow_ids": [],
            }
        },
    )

    event_id: str
    workflows_evaluated: int = Field(..., description="Active workflows checked against the event")
    workflows_matched: int = Field(..., description="Workflows whose trigger conditions matched")
    matched_workflow_ids: list[str]
    channels_dispatched: int = Field(..., description="Immediate channel dispatches")
    channels_skipped: int = Field(..., description="Immediate channels skipped as inactive or missing")
    channels_failed: int
    notifications_scheduled: int = Field(..., description="Pending records created for delayed steps")
    failed_workflow_ids: list[str]


class SweepReportResponse(BaseModel):
    """Result of one scheduled-notification sweep."""

    model_config = ConfigDict(from_attributes=True)

    due: int = Field(..., description="Pending records that were due")
    dispatched: int
    failed: int = Field(..., description="Records failed because a dependency was missing")
    errors: int = Field(..., description="Records failed by an unexpected error")
    notification_ids: list[str]


class NotificationResponse(BaseModel):
    """A notification audit record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str | None = None
    user_id: str | None = None
    event_id: str
    workflow_id: str
    channel_id: str
    notification_type: str
    title: str | None = None
    description: str | None = None
    severity: str | None = None
    status: str
    delivery_error: str | None = None
    message_content: dict[str, Any] | None = None
    escalation_step: int
    scheduled_for: datetime | None = None
    sent_at: datetime | None = None
    is_read: bool
    created_at: datetime
    updated_at: datetime


class NotificationListResponse(BaseModel):
    """List of notification audit records, newest first."""

    items: list[NotificationResponse]
    count: int = Field(..., description="Number of records returned")
