"""Repositories for the records the engine reads: events, workflows, channels."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from alert_escalation.models import AlertChannel, AlertWorkflow, Event
from alert_escalation.repositories.base import Repository

if TYPE_CHECKING:
    from collections.abc import Sequence


class EventRepository(Repository[Event]):
    model_class = Event


class WorkflowRepository(Repository[AlertWorkflow]):
    model_class = AlertWorkflow

    async def get_active_for_organization(self, organization_id: str) -> Sequence[AlertWorkflow]:
        """Return active workflows of an organization in creation order."""
        stmt = (
            select(AlertWorkflow)
            .where(AlertWorkflow.organization_id == organization_id)
            .where(AlertWorkflow.is_active.is_(True))
            .order_by(AlertWorkflow.created_at, AlertWorkflow.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


class ChannelRepository(Repository[AlertChannel]):
    model_class = AlertChannel
