"""Repository pattern implementation for record store access.

Exports:
    Repository: Generic base class for all repositories
    EventRepository, WorkflowRepository, ChannelRepository: read-side records
    UserRepository, PreferencesRepository: users and notification preferences
    NotificationRepository: AlertNotification audit records
"""

from alert_escalation.repositories.base import MAX_LIMIT, Repository
from alert_escalation.repositories.event_repository import (
    ChannelRepository,
    EventRepository,
    WorkflowRepository,
)
from alert_escalation.repositories.notification_repository import NotificationRepository
from alert_escalation.repositories.user_repository import PreferencesRepository, UserRepository

__all__ = [
    "MAX_LIMIT",
    "ChannelRepository",
    "EventRepository",
    "NotificationRepository",
    "PreferencesRepository",
    "Repository",
    "UserRepository",
    "WorkflowRepository",
]
