"""Repositories for users and their notification preferences."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from alert_escalation.models import User, UserNotificationPreferences
from alert_escalation.repositories.base import Repository

if TYPE_CHECKING:
    from collections.abc import Sequence


class UserRepository(Repository[User]):
    model_class = User

    async def list_for_organization(self, organization_id: str) -> Sequence[User]:
        """Return all users of an organization in a stable order."""
        stmt = (
            select(User)
            .where(User.organization_id == organization_id)
            .order_by(User.created_at, User.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_by_email(self, email: str, organization_id: str) -> User | None:
        """Return the first user with this email in the organization."""
        users = await self.filter(email=email, organization_id=organization_id, limit=1)
        return users[0] if users else None


class PreferencesRepository(Repository[UserNotificationPreferences]):
    model_class = UserNotificationPreferences

    async def get_for_user(
        self, user_id: str, organization_id: str
    ) -> UserNotificationPreferences | None:
        """Return a user's preferences for an organization, if any are stored."""
        prefs = await self.filter(user_id=user_id, organization_id=organization_id, limit=1)
        return prefs[0] if prefs else None
