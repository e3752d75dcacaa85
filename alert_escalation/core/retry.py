"""Bounded retry with exponential backoff for outbound transports.

Delivery failures are terminal per dispatch attempt. This module lets the HTTP
senders retry transient transport errors a bounded number of times before the
failure is recorded.

Usage:
    from alert_escalation.core.retry import RetryConfig, call_with_retry

    response = await call_with_retry(
        lambda: client.post(url, json=payload),
        config=RetryConfig(max_retries=2, base_delay=0.5),
        retry_on=(httpx.TransportError,),
        operation_name="slack_webhook",
    )
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from prometheus_client import Counter

from alert_escalation.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)

RETRY_ATTEMPTS_TOTAL = Counter(
    "escalation_retry_attempts_total",
    "Total number of transport retry attempts",
    labelnames=["operation", "outcome"],  # outcome: retry, success, exhausted
)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (0 means no retries)
        base_delay: Base delay in seconds before first retry
        max_delay: Maximum delay cap in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Jitter factor (0.0-1.0) for randomizing delays
    """

    max_retries: int = 0
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: float = 0.1


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay for a retry attempt using exponential backoff with jitter.

    Args:
        attempt: The retry attempt number (1-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds before the next retry
    """
    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)

    if config.jitter > 0:
        jitter_range = delay * config.jitter
        delay = delay - jitter_range + (random.random() * 2 * jitter_range)  # noqa: S311

    return max(0.0, delay)


T = TypeVar("T")


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    config: RetryConfig,
    retry_on: tuple[type[BaseException], ...],
    operation_name: str,
) -> T:
    """Await ``func()``, retrying on ``retry_on`` exceptions with backoff.

    The last exception is re-raised once retries are exhausted.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            result = await func()
        except retry_on as e:
            if attempt > config.max_retries:
                if config.max_retries > 0:
                    logger.error(
                        f"Operation '{operation_name}' failed after {attempt} attempts: {e}",
                        extra={"operation": operation_name, "attempts": attempt},
                    )
                    RETRY_ATTEMPTS_TOTAL.labels(
                        operation=operation_name, outcome="exhausted"
                    ).inc()
                raise

            delay = calculate_delay(attempt, config)
            logger.warning(
                f"Operation '{operation_name}' failed (attempt {attempt}/"
                f"{config.max_retries + 1}), retrying in {delay:.2f}s: {e}",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "delay_seconds": delay,
                    "error_type": type(e).__name__,
                },
            )
            RETRY_ATTEMPTS_TOTAL.labels(operation=operation_name, outcome="retry").inc()
            await asyncio.sleep(delay)
            continue

        if attempt > 1:
            logger.info(f"Operation '{operation_name}' succeeded after {attempt} attempts")
            RETRY_ATTEMPTS_TOTAL.labels(operation=operation_name, outcome="success").inc()
        return result
