"""HTTP-based channel senders: generic webhook, Zapier and Slack.

All three POST JSON through a shared HttpPoster, which applies the configured
per-request timeout and retries transport errors a bounded number of times.
A non-2xx response is a delivery failure and is never retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from alert_escalation.core.config import get_settings
from alert_escalation.core.exceptions import TransportError, WebhookDeliveryError
from alert_escalation.core.logging import get_logger, sanitize_error
from alert_escalation.core.retry import RetryConfig, call_with_retry
from alert_escalation.models.enums import ChannelType
from alert_escalation.services.severity import get_severity_color

from .base import (
    ChannelSender,
    DeliveryOutcome,
    DispatchContext,
    event_payload,
    format_confidence,
    format_display_time,
    format_timestamp,
    require_config,
    workflow_payload,
)

if TYPE_CHECKING:
    from alert_escalation.core.config import Settings
    from alert_escalation.models import AlertWorkflow, Event

logger = get_logger(__name__)

MAX_RESPONSE_BODY_LENGTH = 2000  # characters kept in error text


class HttpPoster:
    """Posts JSON payloads with timeout and bounded transport retries.

    Attributes:
        _http_client: Shared httpx client; when None a client is created per request.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._http_client = http_client
        self.settings = settings or get_settings()
        self.retry_config = RetryConfig(
            max_retries=self.settings.webhook_max_retries,
            base_delay=self.settings.webhook_retry_base_delay,
        )

    async def _post_once(
        self, url: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> httpx.Response:
        timeout = float(self.settings.webhook_timeout_seconds)
        if self._http_client is not None:
            return await self._http_client.post(url, json=payload, headers=headers, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, json=payload, headers=headers)

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        kind: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST ``payload`` to ``url`` and require a 2xx response.

        Args:
            url: Destination URL
            payload: JSON body
            kind: Label used in error text ("Webhook", "Zapier webhook", ...)
            headers: Extra headers, merged over the JSON content type

        Raises:
            WebhookDeliveryError: On a non-2xx response
            TransportError: When the request could not be completed
        """
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(headers or {})

        try:
            response = await call_with_retry(
                lambda: self._post_once(url, payload, request_headers),
                config=self.retry_config,
                retry_on=(httpx.TransportError,),
                operation_name=kind.lower().replace(" ", "_"),
            )
        except httpx.HTTPError as e:
            raise TransportError(
                f"{kind} request failed: {sanitize_error(e) or type(e).__name__}",
                service_name="webhook",
            ) from e

        if not response.is_success:
            body = response.text[:MAX_RESPONSE_BODY_LENGTH]
            raise WebhookDeliveryError(
                f"{kind} failed with status {response.status_code}: {body}",
                status=response.status_code,
            )
        return response


class WebhookChannelSender(ChannelSender):
    """POSTs the event and workflow to an arbitrary URL with custom headers."""

    channel_type = ChannelType.WEBHOOK.value

    def __init__(self, poster: HttpPoster) -> None:
        self.poster = poster

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        url = require_config(ctx.channel, "url", "Webhook URL not configured for channel")
        headers = ctx.channel.config.get("headers") or {}
        payload = {"event": event_payload(ctx.event), "workflow": workflow_payload(ctx.workflow)}

        try:
            response = await self.poster.post_json(
                url, payload, kind="Webhook", headers={str(k): str(v) for k, v in headers.items()}
            )
        except TransportError as e:
            logger.error(
                f"Failed to send webhook notification: {e.message}",
                extra={"channel_id": ctx.channel.id, "event_id": ctx.event.id},
            )
            return [
                DeliveryOutcome.failed(
                    e.message,
                    {"webhook_url": url, "error_message": e.message, "sent_data": payload},
                )
            ]

        logger.info(
            "Webhook sent successfully",
            extra={"channel_id": ctx.channel.id, "response_status": response.status_code},
        )
        return [
            DeliveryOutcome.sent(
                {
                    "webhook_url": url,
                    "response_status": response.status_code,
                    "response_text": response.reason_phrase,
                    "sent_data": payload,
                }
            )
        ]


def build_zapier_payload(event: Event, workflow: AlertWorkflow) -> dict[str, Any]:
    return {
        "event_type": event.event_type,
        "severity": event.severity,
        "description": event.description,
        "camera_name": event.camera_name,
        "confidence": event.confidence,
        "zone_name": event.zone_name,
        "timestamp": format_timestamp(event.created_at),
        "organization_id": event.organization_id,
        "workflow_name": workflow.workflow_name,
    }


class ZapierChannelSender(ChannelSender):
    channel_type = ChannelType.ZAPIER.value

    def __init__(self, poster: HttpPoster) -> None:
        self.poster = poster

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        url = require_config(ctx.channel, "zapier_webhook_url", "Zapier webhook URL not configured")
        payload = build_zapier_payload(ctx.event, ctx.workflow)

        try:
            await self.poster.post_json(url, payload, kind="Zapier webhook")
        except TransportError as e:
            logger.error(
                f"Zapier webhook failed: {e.message}",
                extra={"channel_id": ctx.channel.id, "event_id": ctx.event.id},
            )
            return [DeliveryOutcome.failed(e.message, payload)]

        logger.info("Zapier webhook sent successfully", extra={"channel_id": ctx.channel.id})
        return [DeliveryOutcome.sent(payload)]


def build_slack_payload(event: Event, brand: str) -> dict[str, Any]:
    return {
        "text": f"🚨 {brand} Alert",
        "attachments": [
            {
                "color": get_severity_color(event.severity),
                "fields": [
                    {"title": "Event", "value": event.description, "short": False},
                    {"title": "Camera", "value": event.camera_name, "short": True},
                    {"title": "Severity", "value": (event.severity or "").upper(), "short": True},
                    {"title": "Confidence", "value": format_confidence(event.confidence), "short": True},
                    {"title": "Time", "value": format_display_time(event.created_at), "short": True},
                ],
            }
        ],
    }


class SlackChannelSender(ChannelSender):
    """Posts a severity-colored attachment to a Slack incoming webhook."""

    channel_type = ChannelType.SLACK.value

    def __init__(self, poster: HttpPoster, settings: Settings | None = None) -> None:
        self.poster = poster
        self.settings = settings or poster.settings

    async def deliver(self, ctx: DispatchContext) -> list[DeliveryOutcome]:
        url = require_config(ctx.channel, "webhook_url", "Slack webhook URL not configured")
        payload = build_slack_payload(ctx.event, self.settings.alert_brand_name)

        try:
            await self.poster.post_json(url, payload, kind="Slack webhook")
        except TransportError as e:
            logger.error(
                f"Slack notification failed: {e.message}",
                extra={"channel_id": ctx.channel.id, "event_id": ctx.event.id},
            )
            return [DeliveryOutcome.failed(e.message, payload)]

        logger.info("Slack notification sent successfully", extra={"channel_id": ctx.channel.id})
        return [DeliveryOutcome.sent(payload)]
