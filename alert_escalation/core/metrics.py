"""Prometheus metrics definitions and helpers for the escalation engine.

Metric Naming Conventions:
- All metrics are prefixed with 'escalation_'
- Counters end with '_total'

Usage:
    from alert_escalation.core.metrics import record_notification

    record_notification("email", "sent")
"""

from prometheus_client import REGISTRY, Counter, generate_latest

_registry = REGISTRY

NOTIFICATIONS_TOTAL = Counter(
    "escalation_notifications_total",
    "Notification audit records written, by channel type and status",
    labelnames=["channel_type", "status"],
    registry=_registry,
)

WORKFLOWS_MATCHED_TOTAL = Counter(
    "escalation_workflows_matched_total",
    "Workflows whose trigger conditions matched an event",
    registry=_registry,
)

SCHEDULED_STEPS_TOTAL = Counter(
    "escalation_scheduled_steps_total",
    "Pending notifications created for delayed escalation steps",
    registry=_registry,
)

SWEEP_RECORDS_TOTAL = Counter(
    "escalation_sweep_records_total",
    "Due pending notifications handled by the scheduled step processor",
    labelnames=["outcome"],  # dispatched, failed
    registry=_registry,
)

PROCESSING_ERRORS_TOTAL = Counter(
    "escalation_processing_errors_total",
    "Errors caught at an escalation fan-out boundary",
    labelnames=["boundary"],  # workflow, channel, user, sweep, log
    registry=_registry,
)


def record_notification(channel_type: str, status: str) -> None:
    """Record one notification audit write."""
    NOTIFICATIONS_TOTAL.labels(channel_type=channel_type or "unknown", status=status).inc()


def record_workflow_matched() -> None:
    WORKFLOWS_MATCHED_TOTAL.inc()


def record_scheduled_step(count: int = 1) -> None:
    SCHEDULED_STEPS_TOTAL.inc(count)


def record_sweep_record(outcome: str) -> None:
    SWEEP_RECORDS_TOTAL.labels(outcome=outcome).inc()


def record_processing_error(boundary: str) -> None:
    """Record an error isolated at a fan-out boundary."""
    PROCESSING_ERRORS_TOTAL.labels(boundary=boundary).inc()


def get_metrics_response() -> bytes:
    """Generate Prometheus metrics response."""
    return generate_latest(_registry)
