"""
In-memory item store for local runs and tests.

Each operation runs without an `await` between the status check and the
write, so under asyncio a conditional update is atomic in the same way a
single-row `UPDATE ... WHERE status = :expected` is in a real database.
"""
import copy
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from src.application.interfaces.item_store import ItemPatch, ItemStore, RawRecord
from src.domain.enums.item_status import ItemKind, ItemStatus
from src.domain.errors import StoreUnavailableError


class InMemoryItemStore(ItemStore):
    def __init__(self) -> None:
        self.rows: dict[ItemKind, dict[str, RawRecord]] = {kind: {} for kind in ItemKind}
        self.unavailable: set[ItemKind] = set()
        self.writes: list[tuple[ItemKind, str, dict[str, Any]]] = []

    def seed(self, kind: ItemKind, **fields: Any) -> RawRecord:
        """Insert a raw row; `id`, `status` and `created_at` get defaults."""
        row: RawRecord = {
            "id": str(uuid4()),
            "status": ItemStatus.READY.value,
            "photos": None,
            "sale_notes": None,
            "vinted_url": None,
            "published_at": None,
            "created_at": datetime.now(timezone.utc),
        }
        row.update(fields)
        row["id"] = str(row["id"])
        self.rows[kind][row["id"]] = row
        return copy.deepcopy(row)

    def _check_available(self, kind: ItemKind) -> None:
        if kind in self.unavailable:
            raise StoreUnavailableError(f"{kind.value} store unavailable")

    async def fetch_queue_candidates(
        self, kind: ItemKind, statuses: Iterable[ItemStatus]
    ) -> list[RawRecord]:
        self._check_available(kind)
        wanted = {s.value for s in statuses}
        matching = [row for row in self.rows[kind].values() if row.get("status") in wanted]
        matching.sort(key=lambda row: row["created_at"])
        return copy.deepcopy(matching)

    async def conditional_update(
        self, kind: ItemKind, item_id: str, expected_status: ItemStatus, patch: ItemPatch
    ) -> int:
        self._check_available(kind)
        row = self.rows[kind].get(item_id)
        if row is None or row.get("status") != expected_status.value:
            return 0
        values = patch.to_values()
        row.update(values)
        self.writes.append((kind, item_id, values))
        return 1

    async def update(self, kind: ItemKind, item_id: str, patch: ItemPatch) -> None:
        self._check_available(kind)
        row = self.rows[kind].get(item_id)
        if row is None:
            return
        values = patch.to_values()
        row.update(values)
        self.writes.append((kind, item_id, values))

    async def get(self, kind: ItemKind, item_id: str) -> RawRecord | None:
        self._check_available(kind)
        row = self.rows[kind].get(item_id)
        return copy.deepcopy(row) if row is not None else None
