"""
Store interface consumed by the task service, and its SQLAlchemy adapter.

The service only ever talks to a ``Store``; it never builds SQL itself.
Every store call is awaited and attempted exactly once.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Dict, List, Optional, Protocol, Tuple, Type

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tasklog.database import Base
from tasklog.services.errors import StoreError

logger = logging.getLogger("tasklog.store")


@dataclass(frozen=True)
class SearchFilter:
    """Case-insensitive substring match of ``term`` against any of ``fields``."""
    term: str
    fields: Tuple[str, ...]


class Store(Protocol):
    """Narrow query interface over a relational store."""

    async def query(
        self,
        table: Type[Base],
        *,
        order_by: str,
        offset: int,
        limit: int,
        search: Optional[SearchFilter] = None,
    ) -> Tuple[List[Any], int]:
        """Return one page of rows (newest first) and the total matching count."""
        ...

    async def get(self, table: Type[Base], record_id: int) -> Optional[Any]:
        ...

    async def insert(self, table: Type[Base], record: Dict[str, Any]) -> Any:
        ...

    async def update(self, table: Type[Base], record_id: int, changes: Dict[str, Any]) -> Any:
        ...

    async def delete(self, table: Type[Base], record_id: int) -> bool:
        """Delete a row; returns whether a row was actually removed."""
        ...


StoreFactory = Callable[[], AsyncContextManager[Store]]


class SqlAlchemyStore:
    """Store backed by one SQLAlchemy ``AsyncSession``. Each mutation commits on its own."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def query(
        self,
        table: Type[Base],
        *,
        order_by: str,
        offset: int,
        limit: int,
        search: Optional[SearchFilter] = None,
    ) -> Tuple[List[Any], int]:
        count_stmt = select(func.count()).select_from(table)
        rows_stmt = select(table)

        if search is not None and search.term:
            condition = or_(*[
                getattr(table, field).icontains(search.term, autoescape=True)
                for field in search.fields
            ])
            count_stmt = count_stmt.where(condition)
            rows_stmt = rows_stmt.where(condition)

        # Ties on the ordering column fall back to insertion order
        rows_stmt = (
            rows_stmt
            .order_by(getattr(table, order_by).desc(), table.id.desc())
            .offset(offset)
            .limit(limit)
        )

        try:
            total = await self.session.scalar(count_stmt)
            rows = (await self.session.scalars(rows_stmt)).all()
        except SQLAlchemyError as exc:
            logger.exception("Query on %s failed", table.__tablename__)
            raise StoreError(f"query on {table.__tablename__} failed") from exc

        return list(rows), total or 0

    async def get(self, table: Type[Base], record_id: int) -> Optional[Any]:
        try:
            return await self.session.get(table, record_id)
        except SQLAlchemyError as exc:
            logger.exception("Fetching %s %s failed", table.__tablename__, record_id)
            raise StoreError(f"get on {table.__tablename__} failed") from exc

    async def insert(self, table: Type[Base], record: Dict[str, Any]) -> Any:
        instance = table(**record)
        self.session.add(instance)
        try:
            await self.session.commit()
            await self.session.refresh(instance)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Insert into %s failed", table.__tablename__)
            raise StoreError(f"insert into {table.__tablename__} failed") from exc
        return instance

    async def update(self, table: Type[Base], record_id: int, changes: Dict[str, Any]) -> Any:
        try:
            instance = await self.session.get(table, record_id)
            if instance is None:
                raise StoreError(f"{table.__tablename__} row {record_id} no longer exists")
            for key, value in changes.items():
                setattr(instance, key, value)
            await self.session.commit()
            await self.session.refresh(instance)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Update of %s %s failed", table.__tablename__, record_id)
            raise StoreError(f"update of {table.__tablename__} failed") from exc
        return instance

    async def delete(self, table: Type[Base], record_id: int) -> bool:
        try:
            result = await self.session.execute(delete(table).where(table.id == record_id))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Delete of %s %s failed", table.__tablename__, record_id)
            raise StoreError(f"delete from {table.__tablename__} failed") from exc
        return result.rowcount > 0


def sqlalchemy_store_factory(session_factory: async_sessionmaker) -> StoreFactory:
    """Build a factory that opens one session-backed store per request."""

    @asynccontextmanager
    async def open_store() -> AsyncIterator[Store]:
        async with session_factory() as session:
            yield SqlAlchemyStore(session)

    return open_store
