"""Notification logger: writes AlertNotification audit records.

Every delivery attempt, skip and failure goes through NotificationLogger.log().
Without a notification id a new record is created; with one, the existing
(pending) record is updated in place.

A failure to write the audit record is logged at CRITICAL and swallowed so
that a broken record store never interrupts alert delivery.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from alert_escalation.core.logging import get_logger
from alert_escalation.core.metrics import record_notification, record_processing_error
from alert_escalation.core.time_utils import utc_now_naive
from alert_escalation.models import AlertNotification, NotificationStatus

from .channels.base import humanize_event_type

if TYPE_CHECKING:
    from alert_escalation.models import AlertChannel, AlertWorkflow, Event
    from alert_escalation.repositories import NotificationRepository

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ChannelRef:
    """Stand-in for a channel that could not be loaded."""

    id: str
    channel_type: str = "unknown"


def build_title(event: Event) -> str:
    """Build a notification title such as "High Alert: person detected"."""
    severity = event.severity or ""
    return f"{severity[:1].upper()}{severity[1:]} Alert: {humanize_event_type(event.event_type)}"


def build_description(event: Event) -> str:
    return f"{event.description} at {event.camera_name}"


class NotificationLogger:
    """Creates and updates notification audit records."""

    def __init__(self, notifications: NotificationRepository) -> None:
        self.notifications = notifications

    async def log(
        self,
        event: Event,
        workflow: AlertWorkflow,
        channel: AlertChannel | ChannelRef,
        status: NotificationStatus | str,
        step_index: int,
        error: str | None = None,
        content: dict[str, Any] | None = None,
        user_id: str | None = None,
        notification_id: str | None = None,
    ) -> AlertNotification | None:
        """Write one audit record.

        Args:
            event: Event being escalated
            workflow: Workflow being executed
            channel: Target channel (or a ChannelRef for a missing one)
            status: Delivery status
            step_index: Escalation step number
            error: Failure or skip reason
            content: Snapshot of the transmitted payload
            user_id: Recipient user, for user-specific channels
            notification_id: Existing record to update instead of creating one

        Returns:
            The written record, or None if it could not be written
        """
        status = NotificationStatus(status)
        data: dict[str, Any] = {
            "organization_id": event.organization_id,
            "user_id": user_id,
            "event_id": event.id,
            "workflow_id": workflow.id,
            "channel_id": channel.id,
            "notification_type": channel.channel_type,
            "title": build_title(event),
            "description": build_description(event),
            "severity": event.severity,
            "status": status.value,
            "delivery_error": error,
            "message_content": content,
            "escalation_step": step_index,
            "sent_at": utc_now_naive() if status is NotificationStatus.SENT else None,
        }

        try:
            if notification_id:
                record = await self.notifications.update(notification_id, data)
                if record is None:
                    logger.warning(
                        f"Notification {notification_id} not found for update",
                        extra={"notification_id": notification_id},
                    )
                    return None
            else:
                record = await self.notifications.create(AlertNotification(**data))
        except Exception as e:
            record_processing_error("log")
            logger.critical(
                f"Failed to log notification: {e}",
                extra={
                    "event_id": event.id,
                    "workflow_id": workflow.id,
                    "channel_id": channel.id,
                    "status": status.value,
                    "notification_id": notification_id,
                },
                exc_info=True,
            )
            return None

        record_notification(channel.channel_type, status.value)
        logger.debug(
            f"Notification {record.id} logged as {status.value}",
            extra={"notification_id": record.id, "channel_id": channel.id},
        )
        return record
