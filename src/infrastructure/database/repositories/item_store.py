import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.application.interfaces.item_store import ItemPatch, ItemStore, RawRecord
from src.domain.enums.item_status import ItemKind, ItemStatus
from src.domain.errors import StoreUnavailableError
from src.infrastructure.database.models import MODELS_BY_KIND

logger = structlog.get_logger(__name__)


def _parse_id(item_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(item_id))
    except ValueError:
        return None


class SqlAlchemyItemStore(ItemStore):
    """
    Article/lot store backed by SQLAlchemy.

    Every operation runs in its own short-lived session and commits
    immediately, so the queue fetches can run concurrently and each claim
    is a single-row `UPDATE ... WHERE id = :id AND status = :expected`.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_maker() as session:
                yield session
        except (SQLAlchemyError, OSError) as exc:
            logger.error("item_store_unavailable", operation=operation, error=str(exc))
            raise StoreUnavailableError(f"{operation} failed: {exc}") from exc

    async def fetch_queue_candidates(
        self, kind: ItemKind, statuses: Iterable[ItemStatus]
    ) -> list[RawRecord]:
        table = MODELS_BY_KIND[kind].__table__
        query = (
            select(table)
            .where(table.c.status.in_([s.value for s in statuses]))
            .order_by(table.c.created_at.asc())
        )
        async with self._session("fetch_queue_candidates") as session:
            result = await session.execute(query)
            rows = result.mappings().all()
        return [dict(row) for row in rows]

    async def conditional_update(
        self, kind: ItemKind, item_id: str, expected_status: ItemStatus, patch: ItemPatch
    ) -> int:
        parsed_id = _parse_id(item_id)
        if parsed_id is None:
            return 0
        table = MODELS_BY_KIND[kind].__table__
        stmt = (
            update(table)
            .where(table.c.id == parsed_id, table.c.status == expected_status.value)
            .values(**patch.to_values())
        )
        async with self._session("conditional_update") as session:
            result = await session.execute(stmt)
            affected = result.rowcount
            await session.commit()
        logger.debug(
            "conditional_update_applied",
            kind=kind.value,
            item_id=item_id,
            expected_status=expected_status.value,
            affected=affected,
        )
        return affected

    async def update(self, kind: ItemKind, item_id: str, patch: ItemPatch) -> None:
        parsed_id = _parse_id(item_id)
        if parsed_id is None:
            return
        table = MODELS_BY_KIND[kind].__table__
        stmt = update(table).where(table.c.id == parsed_id).values(**patch.to_values())
        async with self._session("update") as session:
            await session.execute(stmt)
            await session.commit()

    async def get(self, kind: ItemKind, item_id: str) -> RawRecord | None:
        parsed_id = _parse_id(item_id)
        if parsed_id is None:
            return None
        table = MODELS_BY_KIND[kind].__table__
        async with self._session("get") as session:
            result = await session.execute(select(table).where(table.c.id == parsed_id))
            row = result.mappings().first()
        return dict(row) if row is not None else None
