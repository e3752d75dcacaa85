"""Unit tests for the per-user notification preference filter."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from alert_escalation.core.config import Settings
from alert_escalation.services.notification_filter import (
    NotificationFilterService,
    evaluate_preferences,
    is_in_dnd_window,
)
from alert_escalation.services.severity import is_below_threshold, severity_rank
from alert_escalation.tests.factories import PreferencesFactory, UserFactory

# 2024-01-01 was a Monday
MONDAY_2300 = datetime(2024, 1, 1, 23, 0)
MONDAY_0100 = datetime(2024, 1, 1, 1, 0)
MONDAY_1200 = datetime(2024, 1, 1, 12, 0)
TUESDAY_1200 = datetime(2024, 1, 2, 12, 0)

OVERNIGHT = {"days": ["monday"], "start_time": "22:00", "end_time": "06:00"}
LUNCH = {"days": ["monday"], "start_time": "11:30", "end_time": "13:00"}


def test_severity_order():
    assert severity_rank("low") < severity_rank("medium") < severity_rank("high")
    assert severity_rank("high") < severity_rank("critical")
    assert is_below_threshold("low", "medium")
    assert not is_below_threshold("medium", "medium")
    assert is_below_threshold("bogus", "low")


def test_no_preferences_uses_defaults():
    assert evaluate_preferences(None, "email", "medium", MONDAY_1200).allow
    decision = evaluate_preferences(None, "email", "low", MONDAY_1200)
    assert not decision.allow
    assert decision.reason == "Severity low below user threshold medium"


def test_mute_denies_everything():
    prefs = PreferencesFactory(mute_alerts=True)
    decision = evaluate_preferences(prefs, "in_app", "critical", MONDAY_1200)
    assert not decision.allow
    assert decision.reason == "User has muted all alerts"


def test_mute_takes_precedence_over_other_rules():
    prefs = PreferencesFactory(mute_alerts=True, blocked_channels=["email"])
    assert evaluate_preferences(prefs, "email", "low", MONDAY_1200).reason == (
        "User has muted all alerts"
    )


def test_blocked_channel_denies():
    prefs = PreferencesFactory(blocked_channels=["email"])
    decision = evaluate_preferences(prefs, "email", "critical", MONDAY_1200)
    assert decision.reason == "User blocked email notifications"
    assert evaluate_preferences(prefs, "in_app", "critical", MONDAY_1200).allow


def test_same_day_dnd_window_denies():
    prefs = PreferencesFactory(do_not_disturb_windows=[LUNCH])
    decision = evaluate_preferences(prefs, "in_app", "critical", MONDAY_1200)
    assert not decision.allow
    assert decision.reason == "User in Do Not Disturb window"
    assert evaluate_preferences(prefs, "in_app", "critical", TUESDAY_1200).allow


def test_overnight_window_never_matches_with_same_day_comparison():
    assert not is_in_dnd_window(OVERNIGHT, MONDAY_2300)
    assert not is_in_dnd_window(OVERNIGHT, MONDAY_0100)


def test_overnight_window_spans_midnight_when_enabled():
    assert is_in_dnd_window(OVERNIGHT, MONDAY_2300, allow_overnight=True)
    assert is_in_dnd_window(OVERNIGHT, MONDAY_0100, allow_overnight=True)
    assert not is_in_dnd_window(OVERNIGHT, MONDAY_1200, allow_overnight=True)


def test_malformed_window_is_ignored():
    assert not is_in_dnd_window({"days": ["monday"]}, MONDAY_1200)
    prefs = PreferencesFactory(do_not_disturb_windows=["nonsense", {"days": ["monday"]}])
    assert evaluate_preferences(prefs, "in_app", "critical", MONDAY_1200).allow


@pytest.fixture
def preferences_repo():
    repo = AsyncMock()
    repo.get_for_user = AsyncMock(return_value=None)
    return repo


async def test_should_notify_loads_user_preferences(preferences_repo, settings):
    user = UserFactory()
    preferences_repo.get_for_user.return_value = PreferencesFactory(
        user_id=user.id, mute_alerts=True
    )
    service = NotificationFilterService(preferences_repo, settings)

    decision = await service.should_notify(user, "in_app", "critical", now=MONDAY_1200)

    assert not decision.allow
    preferences_repo.get_for_user.assert_awaited_once_with(user.id, user.organization_id)


async def test_should_notify_fails_open(preferences_repo, settings):
    preferences_repo.get_for_user.side_effect = RuntimeError("store unavailable")
    service = NotificationFilterService(preferences_repo, settings)

    decision = await service.should_notify(UserFactory(), "email", "low", now=MONDAY_1200)

    assert decision.allow
    assert decision.reason == (
        "Error checking preferences, allowing notification: store unavailable"
    )


async def test_should_notify_uses_configured_timezone(preferences_repo, tmp_path):
    settings = Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        log_file_path=str(tmp_path / "tz.log"),
        preferences_timezone="America/New_York",
    )
    preferences_repo.get_for_user.return_value = PreferencesFactory(do_not_disturb_windows=[LUNCH])
    service = NotificationFilterService(preferences_repo, settings)

    # 17:00 UTC is 12:00 in New York in January
    decision = await service.should_notify(
        UserFactory(), "in_app", "critical", now=datetime(2024, 1, 1, 17, 0)
    )
    assert not decision.allow


async def test_should_notify_honours_overnight_setting(preferences_repo, tmp_path):
    settings = Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        log_file_path=str(tmp_path / "overnight.log"),
        dnd_allow_overnight_windows=True,
    )
    preferences_repo.get_for_user.return_value = PreferencesFactory(
        do_not_disturb_windows=[OVERNIGHT]
    )
    service = NotificationFilterService(preferences_repo, settings)

    decision = await service.should_notify(UserFactory(), "in_app", "critical", now=MONDAY_2300)
    assert not decision.allow
