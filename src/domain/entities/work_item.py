from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from src.domain.enums.item_status import ItemKind, ItemStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WorkItem:
    """
    Unified, read-only projection of an article or a lot waiting for hand-off.

    Never persisted directly; built by the normalizer from a raw record and
    replaced wholesale on every queue refresh.
    """

    # Identity
    id: str
    kind: ItemKind

    # Display data
    title: str = ""
    description: str | None = None
    price: Decimal | None = None
    photos: tuple[str, ...] = ()

    # Hand-off state
    status: ItemStatus = ItemStatus.READY
    external_reference: str | None = None
    audit_notes: str | None = None
    published_at: datetime | None = None

    created_at: datetime = field(default_factory=_utcnow)

    # Kind-specific extras (brand/size/... or category/season/...)
    attributes: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def key(self) -> tuple[ItemKind, str]:
        """Ids are only unique within one kind."""
        return (self.kind, self.id)

    def with_changes(self, **changes: Any) -> "WorkItem":
        return replace(self, **changes)


@dataclass(frozen=True)
class ClaimedItem:
    """A WorkItem this session now owns exclusively."""

    item: WorkItem
    session_id: str
    claimed_at: datetime
