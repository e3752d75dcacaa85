"""In-app channel sender.

The in-app "delivery" is the audit record itself: one record per user of the
event's organization, which the user's notification feed reads back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_escalation.core.logging import get_logger, sanitize_error
from alert_escalation.core.metrics import record_processing_error
from alert_escalation.models.enums import ChannelType

from .base import ChannelSender, DeliveryOutcome, DispatchContext

if TYPE_CHECKING:
    from alert_escalation.repositories import UserRepository
    from alert_escalation.services.notification_filter import NotificationFilterService

logger = get_logger(__name__)


class InAppChannelSender(ChannelSender):
    channel_type = ChannelType.IN_APP.value

    def __init__(self, users: UserRepository, preference_filter: NotificationFilterService) -> None:
        self.users = users
        self.preference_filter = preference_filter

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        event = ctx.event
        try:
            users = await self.users.list_for_organization(event.organization_id)
        except Exception as e:
            logger.error(
                f"Failed to load users for in-app notifications: {e}",
                extra={"organization_id": event.organization_id, "event_id": event.id},
            )
            return [DeliveryOutcome.failed(f"In-app processing error: {sanitize_error(e)}")]

        if not users:
            logger.warning(
                f"No users found for in-app notification in org {event.organization_id}",
                extra={"organization_id": event.organization_id},
            )
            return [DeliveryOutcome.skipped("No users in organization")]

        outcomes: list[DeliveryOutcome] = []
        for user in users:
            try:
                decision = await self.preference_filter.should_notify(
                    user, self.channel_type, event.severity, ctx.workflow, now=ctx.now
                )
            except Exception as e:
                record_processing_error("user")
                logger.error(
                    f"Failed to process in-app notification for user {user.id}: {e}",
                    extra={"user_id": user.id, "event_id": event.id},
                )
                outcomes.append(
                    DeliveryOutcome.failed(
                        f"Error processing in-app for user {user.id}: {sanitize_error(e)}",
                        user_id=user.id,
                    )
                )
                continue

            if not decision.allow:
                logger.info(f"Skipping in-app for user {user.id} due to preferences: {decision.reason}")
                outcomes.append(DeliveryOutcome.skipped(decision.reason, user_id=user.id))
                continue

            outcomes.append(DeliveryOutcome.sent(user_id=user.id))
            logger.debug(f"In-app notification delivered for user {user.id}")

        return outcomes
