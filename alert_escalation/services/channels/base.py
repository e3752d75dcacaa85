"""Base types shared by all channel senders.

Each channel type has one ChannelSender. A sender receives a DispatchContext
and returns one DeliveryOutcome per audit record it wants written; it never
writes audit records itself. The ChannelDispatcher logs the outcomes.

Missing required configuration is reported by raising ChannelConfigurationError
from deliver() (usually via require_config); ChannelSender.send() turns it
into a single failed outcome.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar

from alert_escalation.core.exceptions import ChannelConfigurationError
from alert_escalation.core.logging import get_logger
from alert_escalation.models.enums import NotificationStatus

if TYPE_CHECKING:
    from alert_escalation.models import AlertChannel, AlertWorkflow, Event

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DispatchContext:
    """Everything a sender needs to deliver one notification."""

    event: Event
    workflow: AlertWorkflow
    channel: AlertChannel
    step_index: int
    notification_id: str | None = None
    now: datetime | None = None


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Result of one delivery attempt, to be written as one audit record."""

    status: NotificationStatus
    error: str | None = None
    content: dict[str, Any] | None = None
    user_id: str | None = None

    @classmethod
    def sent(cls, content: dict[str, Any] | None = None, user_id: str | None = None) -> DeliveryOutcome:
        return cls(NotificationStatus.SENT, None, content, user_id)

    @classmethod
    def skipped(cls, reason: str, user_id: str | None = None) -> DeliveryOutcome:
        return cls(NotificationStatus.SKIPPED, reason, None, user_id)

    @classmethod
    def failed(
        cls,
        error: str,
        content: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> DeliveryOutcome:
        return cls(NotificationStatus.FAILED, error, content, user_id)


def require_config(channel: AlertChannel, key: str, message: str) -> Any:
    """Return a required channel configuration value.

    Raises:
        ChannelConfigurationError: If the value is missing or empty.
    """
    value = channel.config.get(key)
    if not value:
        raise ChannelConfigurationError(message, channel_type=channel.channel_type, field=key)
    return value


def humanize_event_type(event_type: str | None) -> str:
    """Render an event_type tag for people ("person_detected" -> "person detected")."""
    return (event_type or "unknown").replace("_", " ")


def format_confidence(confidence: float | None) -> str:
    """Render a 0..1 confidence as a whole percentage."""
    return f"{round((confidence or 0.0) * 100)}%"


def format_timestamp(value: Any) -> str | None:
    """Render a datetime as ISO 8601 (JSON-safe); other values pass through as str."""
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def format_display_time(value: datetime | None) -> str:
    """Render a stored (naive UTC) timestamp for people."""
    if value is None:
        return "unknown"
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def event_payload(event: Event) -> dict[str, Any]:
    """JSON-safe snapshot of an event for outbound payloads."""
    return {
        "id": event.id,
        "organization_id": event.organization_id,
        "event_type": event.event_type,
        "severity": event.severity,
        "confidence": event.confidence,
        "zone_name": event.zone_name,
        "camera_name": event.camera_name,
        "description": event.description,
        "created_at": format_timestamp(event.created_at),
    }


def workflow_payload(workflow: AlertWorkflow) -> dict[str, Any]:
    """JSON-safe snapshot of a workflow for outbound payloads."""
    return {
        "id": workflow.id,
        "organization_id": workflow.organization_id,
        "workflow_name": workflow.workflow_name,
    }


class ChannelSender(ABC):
    """Delivers notifications for one channel type."""

    channel_type: ClassVar[str]

    async def send(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        """Deliver a notification and describe the result.

        Configuration errors become a single failed outcome. Any other
        exception propagates to the dispatcher.
        """
        try:
            return await self.deliver(ctx)
        except ChannelConfigurationError as e:
            logger.error(
                f"{ctx.channel.channel_type} channel {ctx.channel.id} misconfigured: {e.message}",
                extra={"channel_id": ctx.channel.id, "field": e.details.get("field")},
            )
            return [DeliveryOutcome.failed(e.message)]

    @abstractmethod
    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        """Perform the channel-specific delivery."""
