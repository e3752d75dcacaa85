"""Exception hierarchy for the alert escalation engine.

This module provides the exception hierarchy that:
1. Categorizes errors by domain (configuration, transport, lookup, persistence)
2. Supports automatic HTTP status code mapping for the API layer
3. Enables structured error responses
"""

from __future__ import annotations

from typing import Any


class EscalationError(Exception):
    """Base exception for all application-specific errors."""

    default_message: str = "An unexpected error occurred"
    default_error_code: str = "INTERNAL_ERROR"
    default_status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.status_code = status_code or self.default_status_code
        self.details = details or {}
        super().__init__(self.message)


# Validation Errors (400)
class ValidationError(EscalationError):
    default_message = "Validation failed"
    default_error_code = "VALIDATION_ERROR"
    default_status_code = 400


class InvalidEscalationPolicyError(ValidationError):
    """Raised when a workflow's escalation policy cannot be parsed."""

    default_message = "Invalid escalation policy"
    default_error_code = "INVALID_ESCALATION_POLICY"

    def __init__(
        self,
        message: str | None = None,
        *,
        workflow_id: str | None = None,
        step_index: int | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if workflow_id is not None:
            details["workflow_id"] = workflow_id
        if step_index is not None:
            details["step_index"] = step_index
        super().__init__(message, details=details, **kwargs)


# Not Found Errors (404)
class NotFoundError(EscalationError):
    default_message = "Resource not found"
    default_error_code = "NOT_FOUND"
    default_status_code = 404


class ResourceNotFoundError(NotFoundError):
    def __init__(
        self,
        resource_type: str,
        resource_id: str | int,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        if message is None:
            message = f"{resource_type} with id '{resource_id}' not found"
        details = kwargs.pop("details", {}) or {}
        details["resource_type"] = resource_type
        details["resource_id"] = resource_id
        super().__init__(message, details=details, **kwargs)


class EventNotFoundError(ResourceNotFoundError):
    default_error_code = "EVENT_NOT_FOUND"

    def __init__(self, event_id: str, message: str | None = None, **kwargs: Any) -> None:
        super().__init__("Event", event_id, message, **kwargs)


class NotificationNotFoundError(ResourceNotFoundError):
    default_error_code = "NOTIFICATION_NOT_FOUND"

    def __init__(self, notification_id: str, message: str | None = None, **kwargs: Any) -> None:
        super().__init__("Notification", notification_id, message, **kwargs)


# Configuration Errors (500)
class ConfigurationError(EscalationError):
    default_message = "Configuration error"
    default_error_code = "CONFIGURATION_ERROR"


class ChannelConfigurationError(ConfigurationError):
    """Raised when a channel is missing a required configuration field."""

    default_message = "Channel is not configured"
    default_error_code = "CHANNEL_NOT_CONFIGURED"

    def __init__(
        self,
        message: str | None = None,
        *,
        channel_type: str | None = None,
        field: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if channel_type:
            details["channel_type"] = channel_type
        if field:
            details["field"] = field
        super().__init__(message, details=details, **kwargs)


# External Service Errors (503)
class ExternalServiceError(EscalationError):
    default_message = "External service temporarily unavailable"
    default_error_code = "SERVICE_UNAVAILABLE"
    default_status_code = 503

    def __init__(
        self,
        message: str | None = None,
        *,
        service_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.service_name = service_name
        details = kwargs.pop("details", {}) or {}
        if service_name:
            details["service"] = service_name
        super().__init__(message, details=details, **kwargs)


class TransportError(ExternalServiceError):
    """Raised when an outbound delivery transport (SMTP, HTTP) fails.

    Senders catch this at the channel boundary and record the message as the
    notification's delivery_error.
    """

    default_message = "Notification transport failed"
    default_error_code = "TRANSPORT_ERROR"


class EmailTransportError(TransportError):
    default_message = "Email delivery failed"
    default_error_code = "EMAIL_TRANSPORT_ERROR"

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("service_name", "smtp")
        super().__init__(message, **kwargs)


class WebhookDeliveryError(TransportError):
    """Raised when a webhook-style POST returns a non-success response."""

    default_message = "Webhook delivery failed"
    default_error_code = "WEBHOOK_DELIVERY_ERROR"

    def __init__(
        self,
        message: str | None = None,
        *,
        status: int | None = None,
        **kwargs: Any,
    ) -> None:
        self.status = status
        details = kwargs.pop("details", {}) or {}
        if status is not None:
            details["response_status"] = status
        kwargs.setdefault("service_name", "webhook")
        super().__init__(message, details=details, **kwargs)
