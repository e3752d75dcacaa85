"""Unit tests for EscalationEngine event processing and scheduled sweeps.

Coverage includes:
- Immediate dispatch, delayed scheduling and in-place completion
- Inactive/missing channels and per-channel error isolation
- Workflow-level error isolation
- process_due handling of missing dependencies and unexpected errors
- In-app fan-out with stored user preferences
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from alert_escalation.core.config import Settings
from alert_escalation.core.logging import get_correlation_id
from alert_escalation.models import NotificationStatus
from alert_escalation.repositories import NotificationRepository
from alert_escalation.services.escalation_engine import (
    CHANNEL_INACTIVE_OR_MISSING,
    MISSING_SCHEDULED_DEPENDENCIES,
    UNHANDLED_SCHEDULED_ERROR_INFO,
    EscalationEngine,
    get_escalation_engine,
)
from alert_escalation.tests.factories import (
    ChannelFactory,
    EventFactory,
    NotificationFactory,
    PreferencesFactory,
    UserFactory,
    WorkflowFactory,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def engine(session, email_sender, settings):
    return EscalationEngine(session, email_sender=email_sender, settings=settings)


@pytest.fixture
def notifications(session):
    return NotificationRepository(session)


@pytest.fixture
async def c1(persist):
    channel = ChannelFactory(id="c1", channel_configuration={"email_address": "first@example.com"})
    await persist(channel)
    return channel


@pytest.fixture
async def c2(persist):
    channel = ChannelFactory(id="c2", channel_configuration={"email_address": "second@example.com"})
    await persist(channel)
    return channel


@pytest.fixture
async def event(persist):
    event = EventFactory(severity="critical", event_type="intrusion")
    await persist(event)
    return event


async def test_get_escalation_engine(session):
    assert isinstance(await get_escalation_engine(session), EscalationEngine)


async def test_immediate_step_dispatches_once(engine, notifications, persist, event, c1, email_sender):
    workflow = WorkflowFactory(
        trigger_conditions={"event_types": ["intrusion"]},
        escalation_policy=[{"channel_ids": ["c1"], "delay_minutes": 0}],
    )
    await persist(workflow)

    report = await engine.process_event(event, now=NOW)

    assert report.matched_workflow_ids == [workflow.id]
    assert report.channels_dispatched == 1
    [record] = await notifications.filter(event_id=event.id)
    assert record.status == "sent"
    assert record.channel_id == "c1"
    assert record.escalation_step == 0
    email_sender.send.assert_awaited_once()


async def test_delayed_step_creates_pending_record(engine, notifications, persist, event, c1, c2):
    workflow = WorkflowFactory(
        escalation_policy=[
            {"channel_ids": ["c1"], "delay_minutes": 0},
            {"channel_ids": ["c2"], "delay_minutes": 15},
        ]
    )
    await persist(workflow)

    report = await engine.process_event(event, now=NOW)

    assert report.notifications_scheduled == 1
    records = {r.channel_id: r for r in await notifications.filter(event_id=event.id)}
    assert records["c1"].status == "sent"
    assert records["c2"].status == "pending"
    assert records["c2"].scheduled_for == datetime(2024, 1, 1, 12, 15)
    assert records["c2"].escalation_step == 1
    assert records["c2"].notification_type == "email"


async def test_process_due_completes_pending_record_in_place(
    engine, notifications, persist, event, c1, c2, email_sender
):
    workflow = WorkflowFactory(
        escalation_policy=[
            {"channel_ids": ["c1"], "delay_minutes": 0},
            {"channel_ids": ["c2"], "delay_minutes": 15},
        ]
    )
    await persist(workflow)
    await engine.process_event(event, now=NOW)
    [pending] = await notifications.filter(status="pending")

    early = await engine.process_due(now=NOW + timedelta(minutes=10))
    assert early.due == 0

    sweep = await engine.process_due(now=NOW + timedelta(minutes=16))

    assert sweep.due == 1
    assert sweep.dispatched == 1
    assert sweep.notification_ids == [pending.id]
    records = await notifications.filter(event_id=event.id)
    assert len(records) == 2
    updated = await notifications.get_by_id(pending.id)
    assert updated.status == "sent"
    assert updated.message_content["to"] == "second@example.com"
    assert email_sender.send.await_count == 2


async def test_zero_delay_later_step_is_immediate(engine, notifications, persist, event, c1, c2):
    workflow = WorkflowFactory(
        escalation_policy=[
            {"channel_ids": ["c1"], "delay_minutes": 0},
            {"channel_ids": ["c2"], "delay_minutes": 0},
        ]
    )
    await persist(workflow)

    await engine.process_event(event, now=NOW)

    records = await notifications.filter(event_id=event.id)
    assert sorted(r.status for r in records) == ["sent", "sent"]


async def test_inactive_and_missing_channels_get_one_skipped_record(
    engine, notifications, persist, event
):
    inactive = ChannelFactory(id="off", is_active=False)
    workflow = WorkflowFactory(
        escalation_policy=[{"channel_ids": ["off", "ghost"], "delay_minutes": 0}]
    )
    await persist(inactive, workflow)

    report = await engine.process_event(event, now=NOW)

    assert report.channels_skipped == 2
    records = {r.channel_id: r for r in await notifications.filter(event_id=event.id)}
    assert set(records) == {"off", "ghost"}
    assert all(r.status == "skipped" for r in records.values())
    assert all(r.delivery_error == CHANNEL_INACTIVE_OR_MISSING for r in records.values())
    assert records["ghost"].notification_type == "unknown"


async def test_delayed_step_skips_inactive_channels_silently(
    engine, notifications, persist, event, c1
):
    inactive = ChannelFactory(id="off", is_active=False)
    workflow = WorkflowFactory(
        escalation_policy=[
            {"channel_ids": ["c1"], "delay_minutes": 0},
            {"channel_ids": ["off", "ghost"], "delay_minutes": 5},
        ]
    )
    await persist(inactive, workflow)

    report = await engine.process_event(event, now=NOW)

    assert report.notifications_scheduled == 0
    assert len(await notifications.filter(event_id=event.id)) == 1


async def test_missing_email_address_fails_without_transport(
    engine, notifications, persist, event, email_sender
):
    channel = ChannelFactory(id="bare", channel_configuration={})
    workflow = WorkflowFactory(escalation_policy=[{"channel_ids": ["bare"], "delay_minutes": 0}])
    await persist(channel, workflow)

    await engine.process_event(event, now=NOW)

    [record] = await notifications.filter(event_id=event.id)
    assert record.status == "failed"
    assert "not configured" in record.delivery_error
    email_sender.send.assert_not_awaited()


async def test_channel_error_is_isolated(engine, notifications, persist, event, c1, monkeypatch):
    workflow = WorkflowFactory(
        escalation_policy=[{"channel_ids": ["broken", "c1"], "delay_minutes": 0}]
    )
    await persist(workflow)
    original_get = engine.channels.get_by_id

    async def flaky_get(channel_id):
        if channel_id == "broken":
            raise RuntimeError("lookup exploded")
        return await original_get(channel_id)

    monkeypatch.setattr(engine.channels, "get_by_id", flaky_get)

    report = await engine.process_event(event, now=NOW)

    assert report.channels_failed == 1
    records = {r.channel_id: r for r in await notifications.filter(event_id=event.id)}
    assert records["broken"].status == "failed"
    assert records["broken"].delivery_error == "Channel processing failed: lookup exploded"
    assert records["c1"].status == "sent"


async def test_workflow_error_does_not_stop_other_workflows(
    engine, notifications, persist, event, c1
):
    broken = WorkflowFactory(
        escalation_policy=[{"channel_ids": ["c1"], "delay_minutes": -5}],
        created_at=datetime(2024, 1, 1, 8, 0),
    )
    healthy = WorkflowFactory(
        escalation_policy=[{"channel_ids": ["c1"], "delay_minutes": 0}],
        created_at=datetime(2024, 1, 1, 9, 0),
    )
    await persist(broken, healthy)

    report = await engine.process_event(event, now=NOW)

    assert report.failed_workflow_ids == [broken.id]
    assert report.matched_workflow_ids == [broken.id, healthy.id]
    [record] = await notifications.filter(event_id=event.id)
    assert record.workflow_id == healthy.id


async def test_only_active_matching_workflows_of_the_org_run(
    engine, notifications, persist, event, c1
):
    policy = [{"channel_ids": ["c1"], "delay_minutes": 0}]
    matching = WorkflowFactory(escalation_policy=policy)
    inactive = WorkflowFactory(escalation_policy=policy, is_active=False)
    other_org = WorkflowFactory(escalation_policy=policy, organization_id="org-2")
    not_matching = WorkflowFactory(
        escalation_policy=policy, trigger_conditions={"severity_levels": ["low"]}
    )
    await persist(matching, inactive, other_org, not_matching)

    report = await engine.process_event(event, now=NOW)

    assert report.workflows_evaluated == 2
    assert report.matched_workflow_ids == [matching.id]
    assert len(await notifications.filter(event_id=event.id)) == 1


async def test_correlation_id_is_restored(engine, event):
    await engine.process_event(event, now=NOW)
    assert get_correlation_id() is None


async def test_in_app_fan_out_uses_stored_preferences(engine, notifications, persist, event):
    muted, listening = UserFactory(), UserFactory()
    prefs = PreferencesFactory(user_id=muted.id, mute_alerts=True)
    channel = ChannelFactory(id="feed", channel_type="in_app", channel_configuration=None)
    workflow = WorkflowFactory(escalation_policy=[{"channel_ids": ["feed"], "delay_minutes": 0}])
    await persist(muted, listening, prefs, channel, workflow)

    await engine.process_event(event, now=NOW)

    records = {r.user_id: r for r in await notifications.filter(event_id=event.id)}
    assert records[muted.id].status == "skipped"
    assert records[muted.id].delivery_error == "User has muted all alerts"
    assert records[listening.id].status == "sent"
    assert records[listening.id].title == "Critical Alert: intrusion"


async def test_process_due_fails_record_with_missing_dependencies(
    engine, notifications, persist, c1
):
    orphan = NotificationFactory(
        channel_id="c1", scheduled_for=datetime(2024, 1, 1, 11, 0)
    )
    await persist(orphan)

    sweep = await engine.process_due(now=NOW)

    assert sweep.failed == 1
    record = await notifications.get_by_id(orphan.id)
    assert record.status == "failed"
    assert record.delivery_error == MISSING_SCHEDULED_DEPENDENCIES
    assert len(await notifications.filter()) == 1


async def test_process_due_isolates_unexpected_errors(
    engine, notifications, persist, event, c1, monkeypatch
):
    workflow = WorkflowFactory()
    first = NotificationFactory(
        event_id=event.id, workflow_id=workflow.id, channel_id="c1",
        scheduled_for=datetime(2024, 1, 1, 11, 0),
    )
    second = NotificationFactory(
        event_id=event.id, workflow_id=workflow.id, channel_id="c1",
        scheduled_for=datetime(2024, 1, 1, 11, 30),
    )
    await persist(workflow, first, second)
    original_dispatch = engine.dispatcher.dispatch

    async def flaky_dispatch(*args, notification_id=None, **kwargs):
        if notification_id == first.id:
            raise RuntimeError("dispatch crashed")
        return await original_dispatch(*args, notification_id=notification_id, **kwargs)

    monkeypatch.setattr(engine.dispatcher, "dispatch", flaky_dispatch)

    sweep = await engine.process_due(now=NOW)

    assert sweep.errors == 1
    assert sweep.dispatched == 1
    failed = await notifications.get_by_id(first.id)
    assert failed.status == "failed"
    assert failed.delivery_error == "dispatch crashed"
    assert failed.message_content == {"info": UNHANDLED_SCHEDULED_ERROR_INFO}
    assert (await notifications.get_by_id(second.id)).status == "sent"


async def test_process_due_ignores_terminal_records(engine, notifications, persist):
    done = NotificationFactory(status="sent", scheduled_for=datetime(2024, 1, 1, 11, 0))
    await persist(done)

    sweep = await engine.process_due(now=NOW)

    assert sweep.due == 0
    assert (await notifications.get_by_id(done.id)).status == "sent"


async def test_process_due_respects_batch_size(session, email_sender, persist, tmp_path):
    settings = Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        log_file_path=str(tmp_path / "batch.log"),
        escalation_sweep_batch_size=1,
    )
    engine = EscalationEngine(session, email_sender=email_sender, settings=settings)
    await persist(
        NotificationFactory(scheduled_for=datetime(2024, 1, 1, 10, 0)),
        NotificationFactory(scheduled_for=datetime(2024, 1, 1, 11, 0)),
    )

    sweep = await engine.process_due(now=NOW)

    assert sweep.due == 1
    remaining = await NotificationRepository(session).filter(status=NotificationStatus.PENDING.value)
    assert len(remaining) == 1


async def test_rejected_audit_row_does_not_stop_later_channels(
    engine, session, notifications, persist, event, c1, email_sender, reject_notification_rows
):
    bad = ChannelFactory(id="bad", channel_configuration={"email_address": "bad@example.com"})
    workflow = WorkflowFactory(
        escalation_policy=[{"channel_ids": ["bad", "c1"], "delay_minutes": 0}]
    )
    await persist(bad, workflow)
    await reject_notification_rows("channel_id", "bad")

    report = await engine.process_event(event, now=NOW)
    await session.commit()

    assert report.channels_dispatched == 2
    assert report.channels_failed == 0
    [record] = await notifications.filter(event_id=event.id)
    assert record.channel_id == "c1"
    assert record.status == "sent"
    assert email_sender.send.await_count == 2


async def test_rejected_sweep_update_does_not_undo_other_records(
    engine, session, notifications, persist, event, c1, reject_notification_rows
):
    workflow = WorkflowFactory()
    locked = NotificationFactory(
        id="locked", event_id=event.id, workflow_id=workflow.id, channel_id="c1",
        scheduled_for=datetime(2024, 1, 1, 11, 0),
    )
    open_record = NotificationFactory(
        event_id=event.id, workflow_id=workflow.id, channel_id="c1",
        scheduled_for=datetime(2024, 1, 1, 11, 30),
    )
    await persist(workflow, locked, open_record)
    await reject_notification_rows("id", "locked", operation="UPDATE")

    sweep = await engine.process_due(now=NOW)
    await session.commit()

    assert sweep.due == 2
    assert (await notifications.get_by_id(open_record.id)).status == "sent"
    assert (await notifications.get_by_id("locked")).status == "pending"
