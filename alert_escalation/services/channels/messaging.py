"""Messaging and device channel senders: SMS, WhatsApp, Telegram and IoT devices.

These channels have no provider integration yet. Each sender validates its
configuration, builds the exact message it would transmit, logs it, and
reports a sent outcome with that message as the content snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from alert_escalation.core.config import get_settings
from alert_escalation.core.logging import get_logger
from alert_escalation.core.time_utils import to_aware_utc, utc_now
from alert_escalation.models.enums import ChannelType

from .base import (
    ChannelSender,
    DeliveryOutcome,
    DispatchContext,
    format_confidence,
    require_config,
)

if TYPE_CHECKING:
    from alert_escalation.core.config import Settings

logger = get_logger(__name__)

SIMULATED_SUCCESS = "simulated_success"


class _BrandedSender(ChannelSender):
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @property
    def brand(self) -> str:
        return self.settings.alert_brand_name


class SmsChannelSender(_BrandedSender):
    channel_type = ChannelType.SMS.value

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        phone_number = require_config(
            ctx.channel, "phone_number", "Phone number not configured for channel"
        )
        event = ctx.event
        message = (
            f"{self.brand} Alert: {event.description} at {event.camera_name}. "
            f"Severity: {(event.severity or '').upper()}"
        )

        logger.info(
            f"SMS would be sent to {phone_number}: {message}",
            extra={"channel_id": ctx.channel.id, "event_id": event.id},
        )
        return [
            DeliveryOutcome.sent(
                {
                    "delivery_method": "sms",
                    "phone_number": phone_number,
                    "message": message,
                    "status": SIMULATED_SUCCESS,
                }
            )
        ]


class WhatsAppChannelSender(_BrandedSender):
    channel_type = ChannelType.WHATSAPP.value

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        phone_number = require_config(
            ctx.channel, "phone_number", "Phone number not configured for WhatsApp"
        )
        event = ctx.event
        message = (
            f"🚨 {self.brand} Alert\n{event.description}\n"
            f"Camera: {event.camera_name}\nSeverity: {(event.severity or '').upper()}"
        )

        logger.info(
            f"Would send WhatsApp to {phone_number}",
            extra={"channel_id": ctx.channel.id, "event_id": event.id},
        )
        return [DeliveryOutcome.sent({"to": phone_number, "message": message})]


class TelegramChannelSender(_BrandedSender):
    channel_type = ChannelType.TELEGRAM.value

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        chat_id = require_config(ctx.channel, "chat_id", "Telegram chat ID not configured")
        event = ctx.event
        payload = {
            "chat_id": chat_id,
            "text": (
                f"🚨 *{self.brand} Alert*\n\n{event.description}\n\n"
                f"📹 Camera: {event.camera_name}\n"
                f"⚠️ Severity: {(event.severity or '').upper()}\n"
                f"📊 Confidence: {format_confidence(event.confidence)}"
            ),
            "parse_mode": "Markdown",
        }

        logger.info(
            f"Would send Telegram notification to chat ID {chat_id}",
            extra={"channel_id": ctx.channel.id, "event_id": event.id},
        )
        return [DeliveryOutcome.sent(payload)]


class IotDeviceChannelSender(ChannelSender):
    channel_type = ChannelType.IOT_DEVICE.value

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        endpoint = require_config(
            ctx.channel, "device_endpoint", "Device endpoint not configured for channel"
        )
        event = ctx.event
        sent_at = to_aware_utc(ctx.now) if ctx.now is not None else utc_now()
        message = {
            "alert_type": event.event_type,
            "severity": event.severity,
            "message": event.description,
            "timestamp": sent_at.isoformat(),
        }

        logger.info(
            f"IoT alert would be sent to {endpoint}",
            extra={"channel_id": ctx.channel.id, "event_id": event.id},
        )
        return [
            DeliveryOutcome.sent(
                {
                    "delivery_method": "iot_device",
                    "device_endpoint": endpoint,
                    "message": message,
                    "status": SIMULATED_SUCCESS,
                }
            )
        ]
