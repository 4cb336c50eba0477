from enum import Enum


class ItemStatus(str, Enum):
    """Every status the article and lot tables accept."""

    DRAFT = "draft"
    READY = "ready"
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    VINTED_DRAFT = "vinted_draft"
    PUBLISHED = "published"
    SOLD = "sold"
    SOLD_IN_BUNDLE = "vendu_en_lot"
    RESERVED = "reserved"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        """Terminal states end the hand-off; the item is never touched again."""
        return self in (ItemStatus.VINTED_DRAFT, ItemStatus.PUBLISHED, ItemStatus.ERROR)


QUEUE_STATUSES: frozenset[ItemStatus] = frozenset({ItemStatus.READY, ItemStatus.PROCESSING})


class ItemKind(str, Enum):
    """The two record shapes feeding the queue."""

    SINGLE = "single"
    BUNDLE = "bundle"
