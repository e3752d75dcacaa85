"""Notification filter service for per-user delivery decisions.

This service checks a user's notification preferences to decide whether a
notification on a given channel should reach that user. Rules are applied in
order and the first matching rule wins:

1. mute_alerts is set: deny
2. event severity ranks below the user's severity_threshold: deny
3. the channel type is in blocked_channels: deny
4. the current day/time falls inside a do-not-disturb window: deny
5. otherwise: allow

A failure while loading or evaluating preferences never suppresses an alert:
the filter fails open and reports the error in the decision reason.

Do-not-disturb windows are compared as same-day "HH:MM" strings, so a window
such as 22:00-06:00 never matches. Setting dnd_allow_overnight_windows treats
windows whose start is after their end as spanning midnight.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from alert_escalation.core.config import get_settings
from alert_escalation.core.logging import get_logger
from alert_escalation.core.time_utils import to_aware_utc, utc_now
from alert_escalation.models.enums import DayOfWeek
from alert_escalation.models.notification_preferences import DEFAULT_SEVERITY_THRESHOLD
from alert_escalation.services.severity import is_below_threshold

if TYPE_CHECKING:
    from alert_escalation.core.config import Settings
    from alert_escalation.models import AlertWorkflow, User, UserNotificationPreferences
    from alert_escalation.repositories import PreferencesRepository

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PreferenceDecision:
    """Outcome of a preference check."""

    allow: bool
    reason: str


def is_in_dnd_window(
    window: dict[str, Any],
    local_now: datetime,
    allow_overnight: bool = False,
) -> bool:
    """Check if a local timestamp falls within a do-not-disturb window.

    Args:
        window: {"days": [...], "start_time": "HH:MM", "end_time": "HH:MM"}
        local_now: Timestamp in the preferences timezone
        allow_overnight: Treat start_time > end_time as spanning midnight

    Returns:
        True if the window applies, False otherwise (including malformed windows)
    """
    days = window.get("days") or []
    start_time = window.get("start_time")
    end_time = window.get("end_time")
    if not start_time or not end_time:
        return False

    current_day = list(DayOfWeek)[local_now.weekday()]
    if current_day not in [str(day).lower() for day in days]:
        return False

    current_time = local_now.strftime("%H:%M")

    if allow_overnight and start_time > end_time:
        return current_time >= start_time or current_time <= end_time

    return start_time <= current_time <= end_time


def evaluate_preferences(
    prefs: UserNotificationPreferences | None,
    channel_type: str,
    severity: str,
    local_now: datetime,
    allow_overnight: bool = False,
) -> PreferenceDecision:
    """Apply the preference rules to already-loaded preferences.

    A user without stored preferences is treated as having the defaults:
    not muted, threshold "medium", nothing blocked, no windows.
    """
    if prefs is not None and prefs.mute_alerts:
        return PreferenceDecision(False, "User has muted all alerts")

    threshold = (prefs.severity_threshold if prefs else None) or DEFAULT_SEVERITY_THRESHOLD
    if is_below_threshold(severity, threshold):
        return PreferenceDecision(False, f"Severity {severity} below user threshold {threshold}")

    if prefs is not None and channel_type in (prefs.blocked_channels or []):
        return PreferenceDecision(False, f"User blocked {channel_type} notifications")

    windows = prefs.do_not_disturb_windows if prefs is not None else None
    if isinstance(windows, list):
        for window in windows:
            if isinstance(window, dict) and is_in_dnd_window(window, local_now, allow_overnight):
                return PreferenceDecision(False, "User in Do Not Disturb window")

    return PreferenceDecision(True, "User preferences allow notification")


class NotificationFilterService:
    """Service for filtering notifications based on user preferences."""

    def __init__(
        self,
        preferences: PreferencesRepository,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the filter.

        Args:
            preferences: Repository used to load a user's stored preferences
            settings: Application settings (timezone and DND behaviour)
        """
        self.preferences = preferences
        self.settings = settings or get_settings()
        self._timezone = ZoneInfo(self.settings.preferences_timezone)

    def to_local(self, now: datetime | None) -> datetime:
        """Convert a UTC timestamp (naive or aware) to the preferences timezone."""
        return to_aware_utc(now or utc_now()).astimezone(self._timezone)

    async def should_notify(
        self,
        user: User,
        channel_type: str,
        severity: str,
        workflow: AlertWorkflow | None = None,
        now: datetime | None = None,
    ) -> PreferenceDecision:
        """Decide whether ``user`` should receive a ``channel_type`` notification.

        Args:
            user: Recipient user
            channel_type: Channel type tag (e.g. "email", "in_app")
            severity: Event severity label
            workflow: Workflow being executed (for log context)
            now: Evaluation time in UTC; defaults to the current time

        Returns:
            PreferenceDecision; allow is True when preferences cannot be read
        """
        try:
            prefs = await self.preferences.get_for_user(user.id, user.organization_id)
            decision = evaluate_preferences(
                prefs,
                channel_type,
                severity,
                self.to_local(now),
                allow_overnight=self.settings.dnd_allow_overnight_windows,
            )
        except Exception as e:
            logger.error(
                f"Error checking notification preferences for user {user.id}: {e}",
                extra={"user_id": user.id, "workflow_id": getattr(workflow, "id", None)},
            )
            return PreferenceDecision(
                True, f"Error checking preferences, allowing notification: {e}"
            )

        if not decision.allow:
            logger.debug(
                f"Preferences deny {channel_type} for user {user.id}: {decision.reason}",
                extra={"user_id": user.id, "workflow_id": getattr(workflow, "id", None)},
            )
        return decision
