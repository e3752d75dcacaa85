"""SQLAlchemy models for the alert escalation engine."""

from alert_escalation.core.database import Base

from .channel import AlertChannel
from .enums import ChannelType, DayOfWeek, NotificationStatus, Severity
from .event import Event
from .notification import AlertNotification
from .notification_preferences import DEFAULT_SEVERITY_THRESHOLD, UserNotificationPreferences
from .user import User
from .workflow import AlertWorkflow

__all__ = [
    "DEFAULT_SEVERITY_THRESHOLD",
    "AlertChannel",
    "AlertNotification",
    "AlertWorkflow",
    "Base",
    "ChannelType",
    "DayOfWeek",
    "Event",
    "NotificationStatus",
    "Severity",
    "User",
    "UserNotificationPreferences",
]
