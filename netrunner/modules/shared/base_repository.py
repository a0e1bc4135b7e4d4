"""
Base Repository Pattern

Purpose
-------
Type-safe generic repository over SQLAlchemy 2.0 async sessions. The SQL
store adapter builds one repository per table and uses it for keyed reads,
locked reads, filtered queries and counts.

Design Notes
------------
- Pessimistic locking via `for_update=True` (SELECT ... FOR UPDATE)
- Structured debug logging of every query
- No transaction management and no business logic

Usage
-----
    from netrunner.database.models import ActionRecordRow

    actions = BaseRepository(ActionRecordRow, logger)
    pending = await actions.find_many_where(
        session, ActionRecordRow.character_id == 7, ActionRecordRow.result_status.is_(None)
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic repository for one mapped model class.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def _name(self) -> str:
        return self.model_class.__name__

    async def get(self, session: AsyncSession, id_value: Any, for_update: bool = False) -> Optional[T]:
        """Get a record by primary key, optionally locking the row."""
        stmt = select(self.model_class).where(self.model_class.id == id_value)  # type: ignore[attr-defined]
        if for_update:
            stmt = stmt.with_for_update()

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get: {self._name}",
            extra={"model": self._name, "id": id_value, "found": instance is not None, "locked": for_update},
        )
        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        """Find a single record matching conditions."""
        stmt = select(self.model_class).where(*conditions)
        if for_update:
            stmt = stmt.with_for_update()

        result = await session.execute(stmt)
        instance = result.scalars().first()

        self.log.debug(
            f"Repository.find_one_where: {self._name}",
            extra={"model": self._name, "found": instance is not None, "locked": for_update},
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
    ) -> List[T]:
        """Find all records matching conditions."""
        stmt = select(self.model_class).where(*conditions)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self._name}",
            extra={"model": self._name, "count": len(instances)},
        )
        return instances

    async def count(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        """Count records matching conditions."""
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        result = await session.execute(stmt)
        total = int(result.scalar_one())

        self.log.debug(
            f"Repository.count: {self._name}",
            extra={"model": self._name, "count": total},
        )
        return total

    def add(self, session: AsyncSession, instance: T) -> T:
        """Stage a new instance; it is written on flush/commit."""
        session.add(instance)
        self.log.debug(f"Repository.add: {self._name}", extra={"model": self._name})
        return instance

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
