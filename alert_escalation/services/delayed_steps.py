"""Durable delayed escalation steps.

Delayed steps are not held in memory. Scheduling a step writes one pending
AlertNotification per active channel with scheduled_for set to now + delay;
the scheduled step processor later reads due records with due() and resolves
each one in place, either through the dispatcher (NotificationLogger update by
id) or through complete().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from alert_escalation.core.logging import get_logger
from alert_escalation.core.metrics import record_scheduled_step
from alert_escalation.core.time_utils import to_naive_utc
from alert_escalation.models import AlertNotification, NotificationStatus
from alert_escalation.repositories.base import MAX_LIMIT

from .notification_logger import build_description, build_title

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from alert_escalation.models import AlertWorkflow, Event
    from alert_escalation.repositories import ChannelRepository, NotificationRepository

    from .escalation_policy import EscalationStep

logger = get_logger(__name__)


class DelayedStepQueue:
    """Pending-record queue backed by the notification table."""

    def __init__(self, channels: ChannelRepository, notifications: NotificationRepository) -> None:
        self.channels = channels
        self.notifications = notifications

    async def schedule(
        self,
        event: Event,
        workflow: AlertWorkflow,
        step: EscalationStep,
        now: datetime,
    ) -> list[AlertNotification]:
        """Create pending records for every active channel of a delayed step.

        Missing and inactive channels are skipped without a record. A failure
        for one channel is logged and does not stop the others.

        Args:
            event: Event being escalated
            workflow: Workflow owning the step
            step: Delayed escalation step
            now: Processing time; records are due at now + step.delay

        Returns:
            The pending records that were created
        """
        scheduled_for = to_naive_utc(now + step.delay)
        logger.info(
            f"Scheduling step {step.index} for {scheduled_for.isoformat()}",
            extra={"workflow_id": workflow.id, "event_id": event.id, "step": step.index},
        )

        created: list[AlertNotification] = []
        for channel_id in step.channel_ids:
            try:
                channel = await self.channels.get_by_id(channel_id)
                if channel is None or not channel.is_active:
                    logger.debug(f"Not scheduling inactive or missing channel {channel_id}")
                    continue

                record = await self.notifications.create(
                    AlertNotification(
                        organization_id=event.organization_id,
                        event_id=event.id,
                        workflow_id=workflow.id,
                        channel_id=channel.id,
                        notification_type=channel.channel_type,
                        title=build_title(event),
                        description=build_description(event),
                        severity=event.severity,
                        status=NotificationStatus.PENDING.value,
                        escalation_step=step.index,
                        scheduled_for=scheduled_for,
                    )
                )
            except Exception as e:
                logger.error(
                    f"Failed to schedule notification for channel {channel_id}: {e}",
                    extra={"workflow_id": workflow.id, "channel_id": channel_id},
                    exc_info=True,
                )
                continue
            created.append(record)

        if created:
            record_scheduled_step(len(created))
        return created

    async def due(self, now: datetime, limit: int = MAX_LIMIT) -> Sequence[AlertNotification]:
        """Return pending records scheduled at or before ``now``, oldest first."""
        return await self.notifications.get_due(to_naive_utc(now), limit)

    async def complete(
        self,
        notification_id: str,
        status: NotificationStatus,
        error: str | None = None,
        content: dict[str, Any] | None = None,
        *,
        force: bool = False,
    ) -> AlertNotification | None:
        """Move a pending record to a terminal status.

        Records that are already terminal are left alone unless ``force`` is set.

        Returns:
            The updated record, or None if it does not exist or was not pending
        """
        record = await self.notifications.get_by_id(notification_id)
        if record is None:
            return None
        if not force and NotificationStatus(record.status).is_terminal:
            logger.debug(f"Notification {notification_id} already {record.status}, not updating")
            return None

        data: dict[str, Any] = {"status": status.value, "delivery_error": error}
        if content is not None:
            data["message_content"] = content
        return await self.notifications.update(notification_id, data)
