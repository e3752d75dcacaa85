"""Generic Repository base class for record store access.

The escalation engine treats the record store as an external collaborator with
CRUD semantics (get, filter, create, update). This module provides that
contract on top of SQLAlchemy 2.0 async sessions.

Example:
    from alert_escalation.repositories import Repository
    from alert_escalation.models import AlertChannel

    class ChannelRepository(Repository[AlertChannel]):
        model_class = AlertChannel

    async with get_session() as session:
        repo = ChannelRepository(session)
        channel = await repo.get_by_id("c1")
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import select

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from alert_escalation.core.database import Base

T = TypeVar("T", bound="Base")

# Maximum allowed limit for filtered queries to prevent memory exhaustion
MAX_LIMIT = 1000


class Repository(Generic[T]):  # noqa: UP046
    """Generic repository base class providing common CRUD operations.

    Attributes:
        model_class: Class attribute that must be set to the SQLAlchemy model class.
        session: The async database session used for all operations.
    """

    model_class: type[T]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, entity_id: Any) -> T | None:
        """Retrieve an entity by its primary key, or None if it does not exist."""
        if entity_id is None:
            return None
        return await self.session.get(self.model_class, entity_id)

    async def filter(self, *, limit: int | None = None, **criteria: Any) -> Sequence[T]:
        """Retrieve entities whose columns equal the given criteria.

        Args:
            limit: Optional maximum number of rows, capped to MAX_LIMIT.
            **criteria: Column name / value pairs combined with AND.

        Raises:
            ValueError: If a criterion names a column the model does not have.
        """
        stmt = select(self.model_class)
        columns = self.model_class.__table__.columns
        for name, value in criteria.items():
            if name not in columns:
                raise ValueError(f"{self.model_class.__name__} has no column {name!r}")
            stmt = stmt.where(columns[name] == value)
        if limit is not None:
            stmt = stmt.limit(min(limit, MAX_LIMIT))
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def create(self, entity: T) -> T:
        """Persist a new entity and return it with database-generated values.

        The entity is flushed but not committed; commit happens when the
        session context exits.

        Note:
            The flush runs inside a savepoint. If it fails, only the savepoint
            is rolled back and the session stays usable for later writes.
        """
        async with self.session.begin_nested():
            self.session.add(entity)
            await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity_id: Any, data: Mapping[str, Any]) -> T | None:
        """Apply ``data`` to the entity with the given primary key.

        The change is flushed inside a savepoint, like create().

        Returns:
            The updated entity, or None if no entity has that key.

        Raises:
            ValueError: If data names a column the model does not have.
        """
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return None
        columns = self.model_class.__table__.columns
        for name in data:
            if name not in columns:
                raise ValueError(f"{self.model_class.__name__} has no column {name!r}")
        async with self.session.begin_nested():
            for name, value in data.items():
                setattr(entity, name, value)
            await self.session.flush()
        await self.session.refresh(entity)
        return entity
