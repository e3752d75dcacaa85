"""Escalation API endpoints.

Entry points for the detection pipeline (process an event), the scheduler
(process due notifications) and the notification feed (list and mark read).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from alert_escalation.api.schemas.escalation import (
    EscalationReportResponse,
    NotificationListResponse,
    NotificationResponse,
    SweepReportResponse,
)
from alert_escalation.core import get_db
from alert_escalation.core.exceptions import NotificationNotFoundError, ValidationError
from alert_escalation.core.logging import get_logger
from alert_escalation.models import ChannelType, NotificationStatus
from alert_escalation.repositories import NotificationRepository
from alert_escalation.services.escalation_engine import EscalationEngine

logger = get_logger(__name__)

router = APIRouter(prefix="/api/escalation", tags=["escalation"])


async def get_escalation_engine_dependency(
    db: AsyncSession = Depends(get_db),
) -> EscalationEngine:
    """FastAPI dependency providing an engine bound to the request session."""
    return EscalationEngine(db)


@router.post(
    "/events/{event_id}/process",
    response_model=EscalationReportResponse,
    responses={404: {"description": "Event not found"}},
)
async def process_event(
    event_id: str,
    engine: EscalationEngine = Depends(get_escalation_engine_dependency),
) -> EscalationReportResponse:
    """Match an event against its organization's workflows and escalate it.

    Immediate steps are dispatched before the response is returned; delayed
    steps are stored as pending notifications.
    """
    report = await engine.process_event_by_id(event_id)
    return EscalationReportResponse.model_validate(report)


@router.post("/process-due", response_model=SweepReportResponse)
async def process_due(
    engine: EscalationEngine = Depends(get_escalation_engine_dependency),
) -> SweepReportResponse:
    """Dispatch pending scheduled notifications that are due."""
    report = await engine.process_due()
    return SweepReportResponse.model_validate(report)


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    organization_id: str | None = Query(None),
    event_id: str | None = Query(None),
    channel_id: str | None = Query(None),
    user_id: str | None = Query(None),
    status: NotificationStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
) -> NotificationListResponse:
    """List notification audit records, newest first."""
    records = await NotificationRepository(db).search(
        organization_id=organization_id,
        event_id=event_id,
        channel_id=channel_id,
        user_id=user_id,
        status=status.value if status else None,
        limit=limit,
    )
    items = [NotificationResponse.model_validate(record) for record in records]
    return NotificationListResponse(items=items, count=len(items))


@router.post(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    responses={
        400: {"description": "Notification is not an in-app notification"},
        404: {"description": "Notification not found"},
    },
)
async def mark_notification_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
) -> NotificationResponse:
    """Mark an in-app notification as read."""
    repo = NotificationRepository(db)
    record = await repo.get_by_id(notification_id)
    if record is None:
        raise NotificationNotFoundError(notification_id)
    if record.notification_type != ChannelType.IN_APP.value:
        raise ValidationError(
            "Only in-app notifications can be marked read",
            details={"notification_type": record.notification_type},
        )

    if not record.is_read:
        record = await repo.update(notification_id, {"is_read": True})
        logger.debug(f"Notification {notification_id} marked read")
    return NotificationResponse.model_validate(record)
