"""Channel senders and the dispatcher registry.

Usage:
    from alert_escalation.services.channels import build_default_dispatcher

    dispatcher = build_default_dispatcher(
        notification_logger, users, preference_filter, email_sender, http_client
    )
    await dispatcher.dispatch(event, workflow, channel, step_index=0)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_escalation.core.config import get_settings

from .base import ChannelSender, DeliveryOutcome, DispatchContext, require_config
from .dispatcher import ChannelDispatcher, UnsupportedChannelSender
from .email import EmailChannelSender
from .http import HttpPoster, SlackChannelSender, WebhookChannelSender, ZapierChannelSender
from .in_app import InAppChannelSender
from .messaging import (
    IotDeviceChannelSender,
    SmsChannelSender,
    TelegramChannelSender,
    WhatsAppChannelSender,
)

if TYPE_CHECKING:
    import httpx

    from alert_escalation.core.config import Settings
    from alert_escalation.repositories import UserRepository
    from alert_escalation.services.email_transport import EmailSender
    from alert_escalation.services.notification_filter import NotificationFilterService
    from alert_escalation.services.notification_logger import NotificationLogger


def build_default_dispatcher(
    notification_logger: NotificationLogger,
    users: UserRepository,
    preference_filter: NotificationFilterService,
    email_sender: EmailSender,
    http_client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
) -> ChannelDispatcher:
    """Create a dispatcher with a sender registered for every built-in channel type."""
    settings = settings or get_settings()
    poster = HttpPoster(http_client, settings)
    return ChannelDispatcher(
        notification_logger,
        senders=[
            EmailChannelSender(email_sender, users, preference_filter, settings),
            InAppChannelSender(users, preference_filter),
            WebhookChannelSender(poster),
            ZapierChannelSender(poster),
            SlackChannelSender(poster, settings),
            SmsChannelSender(settings),
            WhatsAppChannelSender(settings),
            TelegramChannelSender(settings),
            IotDeviceChannelSender(),
        ],
    )


__all__ = [
    "ChannelDispatcher",
    "ChannelSender",
    "DeliveryOutcome",
    "DispatchContext",
    "EmailChannelSender",
    "HttpPoster",
    "InAppChannelSender",
    "IotDeviceChannelSender",
    "SlackChannelSender",
    "SmsChannelSender",
    "TelegramChannelSender",
    "UnsupportedChannelSender",
    "WebhookChannelSender",
    "WhatsAppChannelSender",
    "ZapierChannelSender",
    "build_default_dispatcher",
    "require_config",
]
