"""
Generic async repository over one SQLAlchemy model.

Repositories never open or commit transactions: every method takes the
session the service is working in, so reads, locked reads and writes compose
into the caller's transaction. Each call is logged at debug level with the
model name.

    class DailyQuestRepository(BaseRepository[DailyQuest]):
        async def find_for_owner(self, session, owner_id):
            return await self.find_many_where(session, DailyQuest.owner_id == owner_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    def _query(
        self,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Sequence[Any] = (),
        for_update: bool = False,
    ) -> Select:
        stmt = select(self.model_class).where(*conditions)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if for_update:
            stmt = stmt.with_for_update()
        return stmt

    def _trace(self, action: str, **details: Any) -> None:
        model = self.model_class.__name__
        self.log.debug(f"{model} repository {action}", extra={"model": model, **details})

    async def get(self, session: AsyncSession, id_value: Any) -> Optional[T]:
        """Row by primary key, without a lock."""
        instance = await session.get(self.model_class, id_value)
        self._trace("get", id=id_value, found=instance is not None)
        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        """
        At most one row matching `conditions`.

        With `for_update=True` the row stays locked (SELECT ... FOR UPDATE)
        until the caller's transaction ends.
        """
        result = await session.execute(self._query(conditions, for_update=for_update))
        instance = result.scalar_one_or_none()
        self._trace("find_one", found=instance is not None, locked=for_update)
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        for_update: bool = False,
    ) -> List[T]:
        result = await session.execute(self._query(conditions, order_by, for_update))
        instances = list(result.scalars().all())
        self._trace("find_many", found_count=len(instances), locked=for_update)
        return instances

    def add_many(self, session: AsyncSession, instances: Sequence[T]) -> List[T]:
        session.add_all(instances)
        self._trace("add_many", count=len(instances))
        return list(instances)

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
        self._trace("flush")
