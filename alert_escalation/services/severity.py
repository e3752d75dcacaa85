"""Severity ordering and presentation helpers.

The severity taxonomy defines four levels in a fixed total order:
LOW < MEDIUM < HIGH < CRITICAL

Threshold comparisons (user severity thresholds) use this order. Unknown
labels rank below LOW so they never pass a threshold.
"""

from __future__ import annotations

from alert_escalation.models.enums import Severity

SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
)

SEVERITY_RANK: dict[str, int] = {severity.value: rank for rank, severity in enumerate(SEVERITY_ORDER)}

# Colors for rich message payloads (Slack attachments)
SEVERITY_COLORS: dict[str, str] = {
    Severity.CRITICAL.value: "#dc2626",
    Severity.HIGH.value: "#ea580c",
    Severity.MEDIUM.value: "#d97706",
    Severity.LOW.value: "#059669",
}
DEFAULT_SEVERITY_COLOR = "#6b7280"


def severity_rank(severity: str | Severity | None) -> int:
    """Return the position of a severity label in the fixed order.

    Returns -1 for None or unrecognized labels.
    """
    if severity is None:
        return -1
    key = severity.value if isinstance(severity, Severity) else str(severity).lower()
    return SEVERITY_RANK.get(key, -1)


def is_below_threshold(severity: str | Severity | None, threshold: str | Severity) -> bool:
    """Check whether ``severity`` ranks strictly below ``threshold``."""
    return severity_rank(severity) < severity_rank(threshold)


def get_severity_color(severity: str | None) -> str:
    """Get the display color for a severity label."""
    if severity is None:
        return DEFAULT_SEVERITY_COLOR
    return SEVERITY_COLORS.get(severity.lower(), DEFAULT_SEVERITY_COLOR)
