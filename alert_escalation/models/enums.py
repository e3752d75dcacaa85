"""Enumeration types for the alert escalation engine."""

from enum import StrEnum, auto


class Severity(StrEnum):
    """Severity levels for detection events.

    The declaration order is the severity order used by threshold comparisons:
    LOW < MEDIUM < HIGH < CRITICAL.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ChannelType(StrEnum):
    """Notification channel types with a registered sender."""

    EMAIL = auto()
    WEBHOOK = auto()
    IN_APP = auto()
    SMS = auto()
    WHATSAPP = auto()
    IOT_DEVICE = auto()
    ZAPIER = auto()
    SLACK = auto()
    TELEGRAM = auto()


class NotificationStatus(StrEnum):
    """Delivery status of a notification audit record.

    PENDING is only used for delayed escalation steps; every other record is
    written directly in a terminal state.
    """

    PENDING = auto()
    SENT = auto()
    SKIPPED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self is not NotificationStatus.PENDING


class DayOfWeek(StrEnum):
    """Days of the week for do-not-disturb windows."""

    MONDAY = auto()
    TUESDAY = auto()
    WEDNESDAY = auto()
    THURSDAY = auto()
    FRIDAY = auto()
    SATURDAY = auto()
    SUNDAY = auto()
