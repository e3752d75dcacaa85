"""Alert escalation engine.

This module drives escalation for detection events. For each event the engine
loads the organization's active workflows, keeps those whose trigger
conditions match, and walks each workflow's escalation policy in order:

    - Immediate steps (step 0, and later steps with no delay) are dispatched
      to their channels right away.
    - Delayed steps are written as pending notification records, due at
      processing time + delay. process_due() later dispatches them and updates
      the same records in place.

Failures are isolated at every fan-out boundary. A failing workflow does not
stop the next workflow, a failing channel does not stop the next channel, and
a failing scheduled record does not stop the rest of the sweep. Every outcome
is recorded as an AlertNotification audit record.

Usage:
    from alert_escalation.services.escalation_engine import EscalationEngine

    engine = EscalationEngine(session)
    report = await engine.process_event(event)
    sweep = await engine.process_due()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from alert_escalation.core.config import get_settings
from alert_escalation.core.exceptions import EventNotFoundError
from alert_escalation.core.logging import (
    get_correlation_id,
    get_logger,
    sanitize_error,
    set_correlation_id,
)
from alert_escalation.core.metrics import (
    record_processing_error,
    record_sweep_record,
    record_workflow_matched,
)
from alert_escalation.core.time_utils import utc_now
from alert_escalation.models import NotificationStatus
from alert_escalation.repositories import (
    ChannelRepository,
    EventRepository,
    NotificationRepository,
    PreferencesRepository,
    UserRepository,
    WorkflowRepository,
)
from alert_escalation.services import condition_matcher
from alert_escalation.services.channels import build_default_dispatcher
from alert_escalation.services.delayed_steps import DelayedStepQueue
from alert_escalation.services.email_transport import SmtpEmailSender
from alert_escalation.services.escalation_policy import parse_escalation_policy
from alert_escalation.services.notification_filter import NotificationFilterService
from alert_escalation.services.notification_logger import ChannelRef, NotificationLogger

if TYPE_CHECKING:
    from datetime import datetime

    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession

    from alert_escalation.core.config import Settings
    from alert_escalation.models import AlertNotification, AlertWorkflow, Event
    from alert_escalation.services.channels import ChannelDispatcher
    from alert_escalation.services.email_transport import EmailSender
    from alert_escalation.services.escalation_policy import EscalationStep

logger = get_logger(__name__)

CHANNEL_INACTIVE_OR_MISSING = "Channel inactive or missing"
MISSING_SCHEDULED_DEPENDENCIES = "Missing event/workflow/inactive channel for scheduled notification"
UNHANDLED_SCHEDULED_ERROR_INFO = "Unhandled error during scheduled notification processing"


@dataclass(slots=True)
class EscalationReport:
    """Summary of one process_event() call."""

    event_id: str
    workflows_evaluated: int = 0
    matched_workflow_ids: list[str] = field(default_factory=list)
    channels_dispatched: int = 0
    channels_skipped: int = 0
    channels_failed: int = 0
    notifications_scheduled: int = 0
    failed_workflow_ids: list[str] = field(default_factory=list)

    @property
    def workflows_matched(self) -> int:
        return len(self.matched_workflow_ids)


@dataclass(slots=True)
class SweepReport:
    """Summary of one process_due() call."""

    due: int = 0
    dispatched: int = 0
    failed: int = 0
    errors: int = 0
    notification_ids: list[str] = field(default_factory=list)


class EscalationEngine:
    """Matches events to workflows and drives their escalation policies.

    Attributes:
        session: Database session shared by all repositories
        dispatcher: Channel dispatcher (sender registry)
        queue: Durable delayed-step queue
    """

    def __init__(
        self,
        session: AsyncSession,
        email_sender: EmailSender | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        dispatcher: ChannelDispatcher | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            session: Database session
            email_sender: Email transport; defaults to SMTP from settings
            http_client: Shared httpx client for webhook-style channels
            settings: Application settings
            dispatcher: Pre-built dispatcher, replacing the default registry
        """
        self.session = session
        self.settings = settings or get_settings()

        self.events = EventRepository(session)
        self.workflows = WorkflowRepository(session)
        self.channels = ChannelRepository(session)
        self.notifications = NotificationRepository(session)
        self.users = UserRepository(session)

        self.preference_filter = NotificationFilterService(
            PreferencesRepository(session), self.settings
        )
        self.notification_logger = NotificationLogger(self.notifications)
        self.queue = DelayedStepQueue(self.channels, self.notifications)
        self.dispatcher = dispatcher or build_default_dispatcher(
            self.notification_logger,
            self.users,
            self.preference_filter,
            email_sender or SmtpEmailSender(self.settings),
            http_client,
            self.settings,
        )

    async def process_event(self, event: Event, now: datetime | None = None) -> EscalationReport:
        """Run every matching workflow of the event's organization.

        Never raises; errors are logged and reflected in the report.

        Args:
            event: Detection event to escalate
            now: Processing time (UTC); defaults to the current time

        Returns:
            EscalationReport summarizing the work done
        """
        now = now or utc_now()
        report = EscalationReport(event_id=event.id)
        previous_correlation_id = get_correlation_id()
        set_correlation_id(f"event-{event.id}-{uuid4().hex[:8]}")

        try:
            logger.info(
                f"Processing event {event.id} for org {event.organization_id}",
                extra={"event_id": event.id, "organization_id": event.organization_id},
            )
            try:
                workflows = await self.workflows.get_active_for_organization(event.organization_id)
            except Exception as e:
                record_processing_error("event")
                logger.error(
                    f"Error processing event {event.id}: {e}",
                    extra={"event_id": event.id},
                    exc_info=True,
                )
                return report

            logger.debug(f"Found {len(workflows)} active workflows for org {event.organization_id}")

            for workflow in workflows:
                report.workflows_evaluated += 1
                try:
                    if not self._matches(event, workflow):
                        continue
                    report.matched_workflow_ids.append(workflow.id)
                    record_workflow_matched()
                    await self._execute_workflow(event, workflow, now, report)
                except Exception as e:
                    record_processing_error("workflow")
                    report.failed_workflow_ids.append(workflow.id)
                    logger.error(
                        f"Failed to execute workflow {workflow.id}: {e}",
                        extra={"event_id": event.id, "workflow_id": workflow.id},
                        exc_info=True,
                    )

            logger.info(
                f"Event {event.id} matched {report.workflows_matched} of "
                f"{report.workflows_evaluated} workflows",
                extra={
                    "event_id": event.id,
                    "channels_dispatched": report.channels_dispatched,
                    "notifications_scheduled": report.notifications_scheduled,
                },
            )
            return report
        finally:
            set_correlation_id(previous_correlation_id)

    async def process_event_by_id(
        self, event_id: str, now: datetime | None = None
    ) -> EscalationReport:
        """Load an event and process it.

        Raises:
            EventNotFoundError: If the event does not exist
        """
        event = await self.events.get_by_id(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return await self.process_event(event, now=now)

    def _matches(self, event: Event, workflow: AlertWorkflow) -> bool:
        failed = condition_matcher.explain(event, workflow)
        if failed:
            logger.debug(
                f"Workflow '{workflow.workflow_name}' not matched: {', '.join(failed)}",
                extra={"workflow_id": workflow.id, "event_id": event.id},
            )
            return False
        logger.info(
            f"Executing workflow '{workflow.workflow_name}' for event {event.id}",
            extra={"workflow_id": workflow.id, "event_id": event.id},
        )
        return True

    async def _execute_workflow(
        self,
        event: Event,
        workflow: AlertWorkflow,
        now: datetime,
        report: EscalationReport,
    ) -> None:
        steps = parse_escalation_policy(workflow)
        for step in steps:
            if step.is_immediate:
                await self._execute_step(event, workflow, step, now, report)
            else:
                scheduled = await self.queue.schedule(event, workflow, step, now)
                report.notifications_scheduled += len(scheduled)

    async def _execute_step(
        self,
        event: Event,
        workflow: AlertWorkflow,
        step: EscalationStep,
        now: datetime,
        report: EscalationReport,
    ) -> None:
        logger.debug(
            f"Executing escalation step {step.index} with {len(step.channel_ids)} channels",
            extra={"workflow_id": workflow.id, "step": step.index},
        )
        for channel_id in step.channel_ids:
            try:
                channel = await self.channels.get_by_id(channel_id)
                if channel is None or not channel.is_active:
                    logger.info(f"Skipping inactive/missing channel {channel_id}")
                    await self.notification_logger.log(
                        event,
                        workflow,
                        channel or ChannelRef(channel_id),
                        NotificationStatus.SKIPPED,
                        step.index,
                        error=CHANNEL_INACTIVE_OR_MISSING,
                    )
                    report.channels_skipped += 1
                    continue

                await self.dispatcher.dispatch(event, workflow, channel, step.index, now=now)
                report.channels_dispatched += 1
            except Exception as e:
                record_processing_error("channel")
                report.channels_failed += 1
                logger.error(
                    f"Failed to process channel {channel_id}: {e}",
                    extra={"channel_id": channel_id, "workflow_id": workflow.id},
                    exc_info=True,
                )
                await self.notification_logger.log(
                    event,
                    workflow,
                    ChannelRef(channel_id),
                    NotificationStatus.FAILED,
                    step.index,
                    error=f"Channel processing failed: {sanitize_error(e)}",
                )

    async def process_due(self, now: datetime | None = None) -> SweepReport:
        """Dispatch pending scheduled notifications whose time has come.

        At most escalation_sweep_batch_size records are handled per call,
        oldest first. Each record is resolved in place.

        Args:
            now: Cutoff time (UTC); defaults to the current time

        Returns:
            SweepReport summarizing the sweep
        """
        now = now or utc_now()
        report = SweepReport()
        previous_correlation_id = get_correlation_id()
        set_correlation_id(f"sweep-{uuid4().hex[:8]}")

        try:
            due = await self.queue.due(now, self.settings.escalation_sweep_batch_size)
            report.due = len(due)
            if due:
                logger.info(f"Processing {len(due)} scheduled notifications")

            for record in due:
                report.notification_ids.append(record.id)
                await self._process_scheduled(record, now, report)

            return report
        finally:
            set_correlation_id(previous_correlation_id)

    async def _process_scheduled(
        self, record: AlertNotification, now: datetime, report: SweepReport
    ) -> None:
        notification_id = record.id
        try:
            event = await self.events.get_by_id(record.event_id)
            workflow = await self.workflows.get_by_id(record.workflow_id)
            channel = await self.channels.get_by_id(record.channel_id)

            if event is None or workflow is None or channel is None or not channel.is_active:
                logger.error(
                    f"Skipping scheduled notification {notification_id} due to "
                    "missing/inactive dependencies",
                    extra={"notification_id": notification_id},
                )
                await self.queue.complete(
                    notification_id, NotificationStatus.FAILED, MISSING_SCHEDULED_DEPENDENCIES
                )
                report.failed += 1
                record_sweep_record("failed")
                return

            await self.dispatcher.dispatch(
                event,
                workflow,
                channel,
                record.escalation_step,
                notification_id=notification_id,
                now=now,
            )
            report.dispatched += 1
            record_sweep_record("dispatched")
        except Exception as e:
            record_processing_error("sweep")
            report.errors += 1
            logger.error(
                f"Failed to process scheduled notification {notification_id}: {e}",
                extra={"notification_id": notification_id},
                exc_info=True,
            )
            try:
                await self.queue.complete(
                    notification_id,
                    NotificationStatus.FAILED,
                    sanitize_error(e),
                    {"info": UNHANDLED_SCHEDULED_ERROR_INFO},
                    force=True,
                )
            except Exception as update_error:
                logger.critical(
                    f"Could not mark scheduled notification {notification_id} failed: "
                    f"{update_error}",
                    extra={"notification_id": notification_id},
                )


async def get_escalation_engine(
    session: AsyncSession,
    email_sender: EmailSender | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> EscalationEngine:
    """Get an EscalationEngine instance.

    Args:
        session: Database session
        email_sender: Optional email transport
        http_client: Optional shared httpx client

    Returns:
        EscalationEngine instance
    """
    return EscalationEngine(session, email_sender=email_sender, http_client=http_client)
