"""Workflow trigger condition matching.

A workflow's trigger_conditions is a JSON object whose clauses are combined
with AND logic. A missing clause is a wildcard, and a workflow without any
trigger_conditions matches every event.

Clauses:
    - event_types: event.event_type must be in the list (an empty list matches nothing)
    - severity_levels: event.severity must be in the list (an empty list matches nothing)
    - confidence_gt: event.confidence must be >= the threshold (inclusive)
    - zones: when non-empty, event.zone_name must be set and in the list
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from alert_escalation.models import AlertWorkflow, Event


def _conditions(workflow: AlertWorkflow) -> dict[str, Any]:
    return workflow.trigger_conditions or {}


def explain(event: Event, workflow: AlertWorkflow) -> list[str]:
    """Return the names of the trigger-condition clauses the event fails.

    An empty list means the workflow matches.
    """
    conditions = _conditions(workflow)
    failed: list[str] = []

    event_types = conditions.get("event_types")
    if event_types is not None and event.event_type not in event_types:
        failed.append("event_types")

    severity_levels = conditions.get("severity_levels")
    if severity_levels is not None and event.severity not in severity_levels:
        failed.append("severity_levels")

    # Inclusive comparison despite the field name
    confidence_gt = conditions.get("confidence_gt")
    if confidence_gt is not None and (event.confidence or 0.0) < float(confidence_gt):
        failed.append("confidence_gt")

    zones = conditions.get("zones")
    if zones and (not event.zone_name or event.zone_name not in zones):
        failed.append("zones")

    return failed


def matches(event: Event, workflow: AlertWorkflow) -> bool:
    """Check whether an event satisfies every trigger condition of a workflow."""
    return not explain(event, workflow)
