"""
SQLAlchemy item store against a file-backed SQLite database.

Exercises the real `UPDATE ... WHERE status = :expected` path, including two
claims racing for the same row.
"""
import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import insert

from src.application.interfaces.item_store import ItemPatch
from src.domain.enums.item_status import ItemKind, ItemStatus
from src.domain.errors import StoreUnavailableError
from src.infrastructure.database.connection import Base, create_engine_for, create_session_maker
from src.infrastructure.database.models import ArticleModel, LotModel
from src.infrastructure.database.repositories.item_store import SqlAlchemyItemStore

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


async def _make_store(tmp_path) -> tuple[SqlAlchemyItemStore, dict[str, uuid.UUID]]:
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'items.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    ids = {"ready": uuid.uuid4(), "draft": uuid.uuid4(), "lot": uuid.uuid4()}
    async with engine.begin() as conn:
        await conn.execute(
            insert(ArticleModel.__table__),
            [
                {
                    "id": ids["ready"],
                    "title": "Jeans",
                    "status": "ready",
                    "photos": ["https://cdn/a.jpg"],
                    "created_at": T0 + timedelta(minutes=1),
                },
                {
                    "id": ids["draft"],
                    "title": "Coat",
                    "status": "draft",
                    "photos": None,
                    "created_at": T0,
                },
            ],
        )
        await conn.execute(
            insert(LotModel.__table__),
            [{"id": ids["lot"], "name": "Lot", "status": "processing", "created_at": T0}],
        )
    return SqlAlchemyItemStore(create_session_maker(engine)), ids


class TestSqlAlchemyItemStore:
    @pytest.mark.asyncio
    async def test_fetch_filters_by_status(self, tmp_path) -> None:
        store, ids = await _make_store(tmp_path)

        rows = await store.fetch_queue_candidates(
            ItemKind.SINGLE, (ItemStatus.READY, ItemStatus.PROCESSING)
        )

        assert [row["id"] for row in rows] == [ids["ready"]]
        assert rows[0]["photos"] == ["https://cdn/a.jpg"]

    @pytest.mark.asyncio
    async def test_conditional_update_commits_once(self, tmp_path) -> None:
        store, ids = await _make_store(tmp_path)
        item_id = str(ids["ready"])
        patch = ItemPatch(status=ItemStatus.PROCESSING, notes="[AGENT_LOCKED_BY:s:2026-01-01T09:00:00+00:00]")

        first = await store.conditional_update(ItemKind.SINGLE, item_id, ItemStatus.READY, patch)
        second = await store.conditional_update(ItemKind.SINGLE, item_id, ItemStatus.READY, patch)

        assert (first, second) == (1, 0)
        row = await store.get(ItemKind.SINGLE, item_id)
        assert row["status"] == "processing"
        assert row["sale_notes"].startswith("[AGENT_LOCKED_BY")

    @pytest.mark.asyncio
    async def test_concurrent_conditional_updates_have_one_winner(self, tmp_path) -> None:
        store, ids = await _make_store(tmp_path)
        item_id = str(ids["ready"])

        counts = await asyncio.gather(
            *(
                store.conditional_update(
                    ItemKind.SINGLE,
                    item_id,
                    ItemStatus.READY,
                    ItemPatch(status=ItemStatus.PROCESSING, notes=f"[AGENT_LOCKED_BY:s{n}:2026-01-01T09:00:00+00:00]"),
                )
                for n in range(2)
            )
        )

        assert sorted(counts) == [0, 1]
        assert (await store.get(ItemKind.SINGLE, item_id))["status"] == "processing"

    @pytest.mark.asyncio
    async def test_unconditional_update_and_clear(self, tmp_path) -> None:
        store, ids = await _make_store(tmp_path)
        item_id = str(ids["lot"])

        await store.update(ItemKind.BUNDLE, item_id, ItemPatch(destination_reference="https://v/1"))
        assert (await store.get(ItemKind.BUNDLE, item_id))["vinted_url"] == "https://v/1"

        await store.update(ItemKind.BUNDLE, item_id, ItemPatch(clear_reference=True))
        assert (await store.get(ItemKind.BUNDLE, item_id))["vinted_url"] is None

    @pytest.mark.asyncio
    async def test_malformed_id_matches_nothing(self, tmp_path) -> None:
        store, _ = await _make_store(tmp_path)

        assert await store.get(ItemKind.SINGLE, "not-a-uuid") is None
        assert (
            await store.conditional_update(
                ItemKind.SINGLE, "not-a-uuid", ItemStatus.READY, ItemPatch(status=ItemStatus.ERROR)
            )
            == 0
        )

    @pytest.mark.asyncio
    async def test_driver_errors_become_store_unavailable(self, tmp_path) -> None:
        engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        store = SqlAlchemyItemStore(create_session_maker(engine))

        # No tables were created
        with pytest.raises(StoreUnavailableError):
            await store.fetch_queue_candidates(ItemKind.SINGLE, (ItemStatus.READY,))
