import asyncio
from dataclasses import dataclass, field

import structlog

from src.application.interfaces.item_store import ItemStore, RawRecord
from src.domain.entities.work_item import WorkItem
from src.domain.enums.item_status import QUEUE_STATUSES, ItemKind, ItemStatus
from src.domain.normalization.records import normalize_record

logger = structlog.get_logger(__name__)

# Stable ordering for the server-side status filter
_QUEUE_STATUS_ORDER: tuple[ItemStatus, ...] = tuple(
    sorted(QUEUE_STATUSES, key=lambda s: s.value)
)


@dataclass(frozen=True)
class QueueSnapshot:
    """Immutable result of one queue build, oldest item first."""

    items: tuple[WorkItem, ...] = ()
    failed_kinds: frozenset[ItemKind] = field(default_factory=frozenset)
    skipped_records: int = 0

    @property
    def retry_suggested(self) -> bool:
        """True when no source could be read at all."""
        return self.failed_kinds == frozenset(ItemKind)

    def __len__(self) -> int:
        return len(self.items)


class BuildQueue:
    """
    Use case: Build the unified hand-off queue from articles and lots.

    Read-only. A source that fails is logged and skipped so the other kind's
    items still show up; this never raises.
    """

    def __init__(self, store: ItemStore) -> None:
        self._store = store

    async def _fetch(self, kind: ItemKind) -> list[RawRecord]:
        return await self._store.fetch_queue_candidates(kind, _QUEUE_STATUS_ORDER)

    async def execute(self) -> QueueSnapshot:
        kinds = list(ItemKind)
        results = await asyncio.gather(
            *(self._fetch(kind) for kind in kinds), return_exceptions=True
        )

        items: list[WorkItem] = []
        failed: set[ItemKind] = set()
        skipped = 0

        for kind, result in zip(kinds, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("queue_source_failed", kind=kind.value, error=str(result))
                failed.add(kind)
                continue

            for raw in result:
                try:
                    items.append(normalize_record(kind, raw))
                except Exception:
                    logger.exception("failed_to_normalize_item", kind=kind.value, item_id=raw.get("id"))
                    skipped += 1

        # Stable sort interleaves the two pre-sorted sources by creation time.
        items.sort(key=lambda item: item.created_at)

        snapshot = QueueSnapshot(
            items=tuple(items), failed_kinds=frozenset(failed), skipped_records=skipped
        )
        logger.info(
            "queue_built",
            size=len(snapshot),
            failed_kinds=sorted(k.value for k in failed),
            skipped=skipped,
        )
        return snapshot
