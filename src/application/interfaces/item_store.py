from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from src.domain.enums.item_status import ItemKind, ItemStatus

RawRecord = dict[str, Any]


@dataclass(frozen=True)
class ItemPatch:
    """
    Fields the hand-off writes on an article or lot row.

    Unset (None) fields are left alone; `clear_reference` writes NULL to the
    destination reference.
    """

    status: ItemStatus | None = None
    notes: str | None = None
    destination_reference: str | None = None
    clear_reference: bool = False
    published_at: datetime | None = None

    def to_values(self) -> dict[str, Any]:
        """Column name -> new value."""
        values: dict[str, Any] = {}
        if self.status is not None:
            values["status"] = self.status.value
        if self.notes is not None:
            values["sale_notes"] = self.notes
        if self.clear_reference:
            values["vinted_url"] = None
        elif self.destination_reference is not None:
            values["vinted_url"] = self.destination_reference
        if self.published_at is not None:
            values["published_at"] = self.published_at
        return values


class ItemStore(ABC):
    """
    Port for the shared article/lot store.

    Implementations raise StoreUnavailableError when the store cannot be reached.
    """

    @abstractmethod
    async def fetch_queue_candidates(
        self, kind: ItemKind, statuses: Iterable[ItemStatus]
    ) -> list[RawRecord]:
        """Rows of `kind` whose status is in `statuses`, oldest first."""
        ...

    @abstractmethod
    async def conditional_update(
        self, kind: ItemKind, item_id: str, expected_status: ItemStatus, patch: ItemPatch
    ) -> int:
        """Apply `patch` only if the row is still in `expected_status`; return rows affected."""
        ...

    @abstractmethod
    async def update(self, kind: ItemKind, item_id: str, patch: ItemPatch) -> None:
        ...

    @abstractmethod
    async def get(self, kind: ItemKind, item_id: str) -> RawRecord | None:
        ...
