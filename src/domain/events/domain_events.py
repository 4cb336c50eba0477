from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from src.domain.enums.item_status import ItemKind, ItemStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class ItemClaimedEvent(DomainEvent):
    """Published when a session wins the claim on a ready item."""

    item_id: str = ""
    kind: ItemKind = ItemKind.SINGLE
    session_id: str = ""


@dataclass(frozen=True)
class ItemStatusChangedEvent(DomainEvent):
    """Published whenever the hand-off writes a terminal status."""

    item_id: str = ""
    kind: ItemKind = ItemKind.SINGLE
    from_status: ItemStatus | None = None
    to_status: ItemStatus = ItemStatus.READY
    session_id: str = ""
    external_reference: str | None = None
