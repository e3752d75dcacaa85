"""Email channel sender."""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_escalation.core.config import get_settings
from alert_escalation.core.exceptions import TransportError
from alert_escalation.core.logging import get_logger, sanitize_error
from alert_escalation.models.enums import ChannelType

from .base import (
    ChannelSender,
    DeliveryOutcome,
    DispatchContext,
    format_confidence,
    format_display_time,
    humanize_event_type,
    require_config,
)

if TYPE_CHECKING:
    from alert_escalation.core.config import Settings
    from alert_escalation.models import Event
    from alert_escalation.repositories import UserRepository
    from alert_escalation.services.email_transport import EmailSender
    from alert_escalation.services.notification_filter import NotificationFilterService

logger = get_logger(__name__)


def build_email_subject(event: Event, brand: str) -> str:
    severity = (event.severity or "").upper()
    return f"🚨 [{brand} Alert] {severity}: {humanize_event_type(event.event_type)}"


def build_email_body(event: Event) -> str:
    return (
        "A new alert has been triggered:\n"
        f"- Event: {event.description}\n"
        f"- Camera: {event.camera_name}\n"
        f"- Severity: {event.severity}\n"
        f"- Confidence: {format_confidence(event.confidence)}\n"
        f"- Time: {format_display_time(event.created_at)}\n"
    )


class EmailChannelSender(ChannelSender):
    """Sends an alert email to the channel's configured address.

    When the workflow honours user preferences and the address belongs to a
    user of the event's organization, that user's preferences can suppress
    the email. A failed user lookup never blocks delivery.
    """

    channel_type = ChannelType.EMAIL.value

    def __init__(
        self,
        transport: EmailSender,
        users: UserRepository,
        preference_filter: NotificationFilterService,
        settings: Settings | None = None,
    ) -> None:
        self.transport = transport
        self.users = users
        self.preference_filter = preference_filter
        self.settings = settings or get_settings()

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        event = ctx.event
        recipient = require_config(
            ctx.channel, "email_address", "Email address not configured for channel"
        )

        if ctx.workflow.use_user_preferences:
            skipped = await self._check_recipient_preferences(ctx, recipient)
            if skipped is not None:
                return [skipped]

        payload = {
            "to": recipient,
            "subject": build_email_subject(event, self.settings.alert_brand_name),
            "body": build_email_body(event),
        }

        try:
            await self.transport.send(payload["to"], payload["subject"], payload["body"])
        except TransportError as e:
            logger.error(
                f"Failed to send email to {recipient}: {e.message}",
                extra={"channel_id": ctx.channel.id, "event_id": event.id},
            )
            return [DeliveryOutcome.failed(e.message, payload)]

        logger.info(
            f"Email sent successfully to {recipient}",
            extra={"channel_id": ctx.channel.id, "event_id": event.id},
        )
        return [DeliveryOutcome.sent(payload)]

    async def _check_recipient_preferences(
        self, ctx: DispatchContext, recipient: str
    ) -> DeliveryOutcome | None:
        try:
            user = await self.users.find_by_email(recipient, ctx.event.organization_id)
            if user is None:
                return None
            decision = await self.preference_filter.should_notify(
                user, self.channel_type, ctx.event.severity, ctx.workflow, now=ctx.now
            )
        except Exception as e:
            logger.error(
                f"Error checking user email settings, sending anyway: {sanitize_error(e)}",
                extra={"channel_id": ctx.channel.id, "event_id": ctx.event.id},
            )
            return None

        if decision.allow:
            return None

        logger.info(
            f"Skipping email to {recipient} - {decision.reason}",
            extra={"channel_id": ctx.channel.id, "user_id": user.id},
        )
        return DeliveryOutcome.skipped(decision.reason, user_id=user.id)
