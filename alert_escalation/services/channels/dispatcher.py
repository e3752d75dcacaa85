"""Channel dispatcher: routes a notification to the sender for its channel type.

Senders are looked up in a registry keyed by channel-type tag. Unknown types
fall back to UnsupportedChannelSender. New channel types are added with
register() without touching the dispatcher.

Every outcome a sender returns is written through the NotificationLogger.
When dispatching a scheduled (pending) record, the first outcome updates that
record and any further outcomes (in-app fan-out) are created as new records.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_escalation.core.logging import get_logger, sanitize_error
from alert_escalation.core.metrics import record_processing_error

from .base import ChannelSender, DeliveryOutcome, DispatchContext

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from alert_escalation.models import AlertChannel, AlertWorkflow, Event
    from alert_escalation.services.notification_logger import NotificationLogger

logger = get_logger(__name__)


class UnsupportedChannelSender(ChannelSender):
    """Fallback for channel types without a registered sender."""

    channel_type = "unsupported"

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        logger.warning(
            f"Unknown or unimplemented channel type: {ctx.channel.channel_type}",
            extra={"channel_id": ctx.channel.id},
        )
        return [DeliveryOutcome.failed(f"Unsupported channel type: {ctx.channel.channel_type}")]


class ChannelDispatcher:
    """Registry of channel senders plus the dispatch/log loop."""

    def __init__(
        self,
        notification_logger: NotificationLogger,
        senders: Iterable[ChannelSender] = (),
        fallback: ChannelSender | None = None,
    ) -> None:
        self.notification_logger = notification_logger
        self._senders: dict[str, ChannelSender] = {}
        self.fallback = fallback or UnsupportedChannelSender()
        for sender in senders:
            self.register(sender)

    def register(self, sender: ChannelSender, channel_type: str | None = None) -> None:
        """Register (or replace) the sender for a channel type."""
        self._senders[channel_type or sender.channel_type] = sender

    def get_sender(self, channel_type: str) -> ChannelSender:
        return self._senders.get(channel_type, self.fallback)

    @property
    def channel_types(self) -> list[str]:
        return sorted(self._senders)

    async def dispatch(
        self,
        event: Event,
        workflow: AlertWorkflow,
        channel: AlertChannel,
        step_index: int,
        notification_id: str | None = None,
        now: datetime | None = None,
    ) -> list[DeliveryOutcome]:
        """Deliver a notification on one channel and log every outcome.

        Never raises for sender failures; they are logged as failed records.
        """
        ctx = DispatchContext(
            event=event,
            workflow=workflow,
            channel=channel,
            step_index=step_index,
            notification_id=notification_id,
            now=now,
        )
        sender = self.get_sender(channel.channel_type)

        try:
            outcomes = await sender.send(ctx)
        except Exception as e:
            record_processing_error("channel")
            logger.error(
                f"Error processing channel {channel.id}: {e}",
                extra={"channel_id": channel.id, "event_id": event.id, "workflow_id": workflow.id},
                exc_info=True,
            )
            outcomes = [
                DeliveryOutcome.failed(f"Error during channel processing: {sanitize_error(e)}")
            ]

        if not outcomes:
            outcomes = [DeliveryOutcome.failed("Channel sender produced no delivery outcome")]

        pending_id = notification_id
        for outcome in outcomes:
            await self.notification_logger.log(
                event,
                workflow,
                channel,
                outcome.status,
                step_index,
                error=outcome.error,
                content=outcome.content,
                user_id=outcome.user_id,
                notification_id=pending_id,
            )
            pending_id = None

        return outcomes
