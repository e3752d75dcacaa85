"""Escalation policy parsing.

A workflow's escalation_policy is stored as an ordered JSON list of
``{"channel_ids": [...], "delay_minutes": N}`` objects. This module turns it
into EscalationStep values whose timing is decided once, when the policy is
loaded:

- Step 0 is always IMMEDIATE, whatever its delay_minutes says.
- A later step with delay_minutes == 0 is IMMEDIATE.
- A later step with delay_minutes > 0 is DELAYED by that many minutes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

from alert_escalation.core.exceptions import InvalidEscalationPolicyError

if TYPE_CHECKING:
    from alert_escalation.models import AlertWorkflow


class StepTiming(StrEnum):
    """When an escalation step is dispatched."""

    IMMEDIATE = auto()
    DELAYED = auto()


@dataclass(frozen=True, slots=True)
class EscalationStep:
    """One step of a workflow's escalation policy.

    Attributes:
        index: Position in the policy (0-based step number)
        channel_ids: Channels notified by this step, in dispatch order
        timing: IMMEDIATE or DELAYED
        delay: Delay relative to event processing; zero for IMMEDIATE steps
    """

    index: int
    channel_ids: tuple[str, ...] = field(default_factory=tuple)
    timing: StepTiming = StepTiming.IMMEDIATE
    delay: timedelta = timedelta(0)

    @property
    def is_immediate(self) -> bool:
        return self.timing is StepTiming.IMMEDIATE

    @property
    def delay_minutes(self) -> int:
        return int(self.delay.total_seconds() // 60)


def _parse_delay(raw: Any, index: int, workflow_id: str | None) -> int:
    if raw is None:
        return 0
    try:
        delay = int(raw)
    except (TypeError, ValueError) as e:
        raise InvalidEscalationPolicyError(
            f"delay_minutes must be an integer, got {raw!r}",
            workflow_id=workflow_id,
            step_index=index,
        ) from e
    if delay < 0:
        raise InvalidEscalationPolicyError(
            f"delay_minutes must be >= 0, got {delay}",
            workflow_id=workflow_id,
            step_index=index,
        )
    return delay


def parse_step(raw: dict[str, Any], index: int, workflow_id: str | None = None) -> EscalationStep:
    """Parse a single raw policy entry into an EscalationStep.

    Raises:
        InvalidEscalationPolicyError: If the entry is not an object, its
            channel_ids is not a list, or its delay is not a non-negative integer.
    """
    if not isinstance(raw, dict):
        raise InvalidEscalationPolicyError(
            f"Escalation step must be an object, got {type(raw).__name__}",
            workflow_id=workflow_id,
            step_index=index,
        )

    raw_channel_ids = raw.get("channel_ids")
    if raw_channel_ids is None:
        raw_channel_ids = []
    elif not isinstance(raw_channel_ids, list):
        raise InvalidEscalationPolicyError(
            f"channel_ids must be a list, got {type(raw_channel_ids).__name__}",
            workflow_id=workflow_id,
            step_index=index,
        )
    channel_ids = tuple(str(cid) for cid in raw_channel_ids)
    delay_minutes = _parse_delay(raw.get("delay_minutes"), index, workflow_id)

    if index == 0 or delay_minutes == 0:
        return EscalationStep(index=index, channel_ids=channel_ids)

    return EscalationStep(
        index=index,
        channel_ids=channel_ids,
        timing=StepTiming.DELAYED,
        delay=timedelta(minutes=delay_minutes),
    )


def parse_escalation_policy(workflow: AlertWorkflow) -> list[EscalationStep]:
    """Parse a workflow's escalation policy into ordered steps.

    A missing policy yields no steps.
    """
    return [
        parse_step(raw, index, workflow.id)
        for index, raw in enumerate(workflow.escalation_policy or [])
    ]
