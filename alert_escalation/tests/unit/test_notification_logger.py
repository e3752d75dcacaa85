"""Unit tests for NotificationLogger audit writes."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

from alert_escalation.models import NotificationStatus
from alert_escalation.repositories import NotificationRepository
from alert_escalation.services.notification_logger import (
    ChannelRef,
    NotificationLogger,
    build_description,
    build_title,
)
from alert_escalation.tests.factories import (
    ChannelFactory,
    EventFactory,
    NotificationFactory,
    WorkflowFactory,
)


def test_title_and_description():
    event = EventFactory(
        severity="high",
        event_type="person_detected",
        description="Someone at the gate",
        camera_name="Gate Cam",
    )
    assert build_title(event) == "High Alert: person detected"
    assert build_description(event) == "Someone at the gate at Gate Cam"


async def test_log_creates_record(session):
    event, workflow, channel = EventFactory(), WorkflowFactory(), ChannelFactory()
    notification_logger = NotificationLogger(NotificationRepository(session))

    record = await notification_logger.log(
        event, workflow, channel, NotificationStatus.SENT, 0, content={"to": "ops@example.com"}
    )

    assert record is not None
    assert record.status == "sent"
    assert record.event_id == event.id
    assert record.workflow_id == workflow.id
    assert record.channel_id == channel.id
    assert record.notification_type == "email"
    assert record.organization_id == event.organization_id
    assert record.message_content == {"to": "ops@example.com"}
    assert record.sent_at is not None
    assert record.escalation_step == 0


async def test_sent_at_only_set_for_sent(session):
    notification_logger = NotificationLogger(NotificationRepository(session))
    record = await notification_logger.log(
        EventFactory(), WorkflowFactory(), ChannelFactory(), "failed", 0, error="boom"
    )
    assert record.sent_at is None
    assert record.delivery_error == "boom"


async def test_log_with_notification_id_updates_in_place(session, persist):
    event, workflow, channel = EventFactory(), WorkflowFactory(), ChannelFactory()
    pending = NotificationFactory(
        event_id=event.id, workflow_id=workflow.id, channel_id=channel.id, escalation_step=1
    )
    await persist(pending)
    repo = NotificationRepository(session)
    notification_logger = NotificationLogger(repo)

    record = await notification_logger.log(
        event, workflow, channel, NotificationStatus.SENT, 1, notification_id=pending.id
    )

    assert record.id == pending.id
    assert record.status == "sent"
    assert len(await repo.filter()) == 1


async def test_placeholder_channel_is_logged_as_unknown(session):
    notification_logger = NotificationLogger(NotificationRepository(session))
    record = await notification_logger.log(
        EventFactory(), WorkflowFactory(), ChannelRef("missing-channel"), "skipped", 0
    )
    assert record.channel_id == "missing-channel"
    assert record.notification_type == "unknown"


async def test_update_of_missing_record_returns_none(session):
    notification_logger = NotificationLogger(NotificationRepository(session))
    record = await notification_logger.log(
        EventFactory(), WorkflowFactory(), ChannelFactory(), "sent", 1, notification_id="nope"
    )
    assert record is None


async def test_store_failure_is_swallowed_and_logged_critical(caplog):
    repo = AsyncMock()
    repo.create.side_effect = RuntimeError("disk full")
    notification_logger = NotificationLogger(repo)

    with caplog.at_level(logging.CRITICAL):
        record = await notification_logger.log(
            EventFactory(), WorkflowFactory(), ChannelFactory(), "sent", 0
        )

    assert record is None
    assert any(
        r.levelno == logging.CRITICAL and "disk full" in r.getMessage() for r in caplog.records
    )


async def test_rejected_write_leaves_session_usable(session, reject_notification_rows, caplog):
    await reject_notification_rows("channel_id", "bad")
    repo = NotificationRepository(session)
    notification_logger = NotificationLogger(repo)
    event, workflow = EventFactory(), WorkflowFactory()

    with caplog.at_level(logging.CRITICAL):
        rejected = await notification_logger.log(
            event, workflow, ChannelFactory(id="bad"), NotificationStatus.SENT, 0
        )
    stored = await notification_logger.log(
        event, workflow, ChannelFactory(id="good"), NotificationStatus.SENT, 0
    )
    await session.commit()

    assert rejected is None
    assert any("store rejected row" in r.getMessage() for r in caplog.records)
    assert stored is not None
    assert [r.channel_id for r in await repo.filter(event_id=event.id)] == ["good"]


async def test_rejected_update_keeps_previous_state(session, persist, reject_notification_rows):
    pending = NotificationFactory(id="locked")
    await persist(pending)
    await reject_notification_rows("id", "locked", operation="UPDATE")
    repo = NotificationRepository(session)
    notification_logger = NotificationLogger(repo)

    record = await notification_logger.log(
        EventFactory(), WorkflowFactory(), ChannelFactory(), "sent", 1, notification_id="locked"
    )
    await session.commit()

    assert record is None
    assert (await repo.get_by_id("locked")).status == "pending"
