"""API tests for the escalation routes and error envelope."""

from __future__ import annotations

import httpx
import pytest

from alert_escalation.api.routes.escalation import get_escalation_engine_dependency
from alert_escalation.core import get_db
from alert_escalation.main import app
from alert_escalation.services.escalation_engine import EscalationEngine
from alert_escalation.tests.factories import (
    ChannelFactory,
    EventFactory,
    NotificationFactory,
    WorkflowFactory,
)


@pytest.fixture
async def client(session, email_sender, settings):
    async def override_get_db():
        yield session

    async def override_engine():
        return EscalationEngine(session, email_sender=email_sender, settings=settings)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_escalation_engine_dependency] = override_engine
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_metrics_endpoint(client):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "escalation_" in response.text


async def test_process_event(client, persist, email_sender):
    event = EventFactory()
    channel = ChannelFactory(id="c1")
    workflow = WorkflowFactory(
        escalation_policy=[
            {"channel_ids": ["c1"], "delay_minutes": 0},
            {"channel_ids": ["c1"], "delay_minutes": 30},
        ]
    )
    await persist(event, channel, workflow)

    response = await client.post(f"/api/escalation/events/{event.id}/process")

    assert response.status_code == 200
    body = response.json()
    assert body["event_id"] == event.id
    assert body["workflows_matched"] == 1
    assert body["matched_workflow_ids"] == [workflow.id]
    assert body["channels_dispatched"] == 1
    assert body["notifications_scheduled"] == 1
    email_sender.send.assert_awaited_once()


async def test_process_unknown_event_returns_404(client):
    response = await client.post("/api/escalation/events/missing/process")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "EVENT_NOT_FOUND"
    assert error["details"]["resource_id"] == "missing"
    assert "timestamp" in error


async def test_process_due_with_nothing_due(client):
    response = await client.post("/api/escalation/process-due")
    assert response.status_code == 200
    assert response.json() == {
        "due": 0,
        "dispatched": 0,
        "failed": 0,
        "errors": 0,
        "notification_ids": [],
    }


async def test_list_notifications_filters(client, persist):
    sent = NotificationFactory(status="sent", event_id="e1")
    pending = NotificationFactory(status="pending", event_id="e1")
    other = NotificationFactory(status="sent", event_id="e2")
    await persist(sent, pending, other)

    response = await client.get(
        "/api/escalation/notifications", params={"event_id": "e1", "status": "sent"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["items"][0]["id"] == sent.id


async def test_list_notifications_rejects_unknown_status(client):
    response = await client.get("/api/escalation/notifications", params={"status": "bogus"})

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["errors"]


async def test_mark_in_app_notification_read(client, persist):
    record = NotificationFactory(notification_type="in_app", status="sent")
    await persist(record)

    response = await client.post(f"/api/escalation/notifications/{record.id}/read")

    assert response.status_code == 200
    assert response.json()["is_read"] is True


async def test_mark_read_rejects_non_in_app(client, persist):
    record = NotificationFactory(notification_type="email", status="sent")
    await persist(record)

    response = await client.post(f"/api/escalation/notifications/{record.id}/read")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_mark_read_unknown_notification(client):
    response = await client.post("/api/escalation/notifications/nope/read")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOTIFICATION_NOT_FOUND"
