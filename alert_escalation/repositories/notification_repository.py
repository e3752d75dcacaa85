"""Repository for AlertNotification audit records."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select

from alert_escalation.models import AlertNotification, NotificationStatus
from alert_escalation.repositories.base import MAX_LIMIT, Repository

if TYPE_CHECKING:
    from collections.abc import Sequence


class NotificationRepository(Repository[AlertNotification]):
    model_class = AlertNotification

    async def get_due(self, now: datetime, limit: int = MAX_LIMIT) -> Sequence[AlertNotification]:
        """Return pending notifications whose scheduled time is at or before ``now``.

        Args:
            now: Naive UTC cutoff.
            limit: Maximum number of records, capped to MAX_LIMIT.
        """
        stmt = (
            select(AlertNotification)
            .where(AlertNotification.status == NotificationStatus.PENDING.value)
            .where(AlertNotification.scheduled_for.is_not(None))
            .where(AlertNotification.scheduled_for <= now)
            .order_by(AlertNotification.scheduled_for, AlertNotification.id)
            .limit(min(limit, MAX_LIMIT))
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def search(
        self,
        *,
        organization_id: str | None = None,
        event_id: str | None = None,
        channel_id: str | None = None,
        user_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
    ) -> Sequence[AlertNotification]:
        """List notifications matching optional filters, newest first."""
        stmt = select(AlertNotification)
        if organization_id is not None:
            stmt = stmt.where(AlertNotification.organization_id == organization_id)
        if event_id is not None:
            stmt = stmt.where(AlertNotification.event_id == event_id)
        if channel_id is not None:
            stmt = stmt.where(AlertNotification.channel_id == channel_id)
        if user_id is not None:
            stmt = stmt.where(AlertNotification.user_id == user_id)
        if status is not None:
            stmt = stmt.where(AlertNotification.status == status)
        stmt = stmt.order_by(
            AlertNotification.created_at.desc(), AlertNotification.id.desc()
        ).limit(min(limit, MAX_LIMIT))
        result = await self.session.execute(stmt)
        return result.scalars().all()
