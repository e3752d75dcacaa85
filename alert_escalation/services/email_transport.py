"""Outbound email transport.

The engine depends only on the EmailSender protocol (``send(to, subject, body)``),
so tests and other deployments can substitute their own transport. SmtpEmailSender
is the production implementation, configured from settings.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from alert_escalation.core.config import get_settings
from alert_escalation.core.exceptions import EmailTransportError
from alert_escalation.core.logging import get_logger, sanitize_error

if TYPE_CHECKING:
    from alert_escalation.core.config import Settings

logger = get_logger(__name__)


@runtime_checkable
class EmailSender(Protocol):
    """Protocol for outbound email transports."""

    async def send(self, to: str, subject: str, body: str) -> None:
        """Send a plain-text email.

        Raises:
            EmailTransportError: If the message could not be handed off.
        """
        ...


class SmtpEmailSender:
    """EmailSender that delivers through an SMTP relay."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def is_configured(self) -> bool:
        """Check if SMTP host and sender address are configured."""
        return bool(self.settings.smtp_host and self.settings.smtp_from_address)

    async def send(self, to: str, subject: str, body: str) -> None:
        if not self.is_configured():
            raise EmailTransportError("Email is not configured (missing SMTP settings)")

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.settings.smtp_from_address or ""
        msg["To"] = to

        try:
            # smtplib is blocking; keep it off the event loop
            await asyncio.to_thread(self._send_sync, msg, [to])
        except smtplib.SMTPAuthenticationError as e:
            raise EmailTransportError(f"SMTP authentication failed: {sanitize_error(e)}") from e
        except (smtplib.SMTPException, OSError) as e:
            raise EmailTransportError(f"SMTP error: {sanitize_error(e)}") from e

        logger.info(f"Email handed to SMTP relay for {to}")

    def _send_sync(self, msg: MIMEText, recipients: list[str]) -> None:
        with smtplib.SMTP(
            self.settings.smtp_host or "",
            self.settings.smtp_port,
            timeout=self.settings.webhook_timeout_seconds,
        ) as server:
            if self.settings.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.settings.smtp_user and self.settings.smtp_password:
                server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.sendmail(self.settings.smtp_from_address or "", recipients, msg.as_string())
