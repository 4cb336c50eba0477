from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.item_store import ItemPatch, ItemStore
from src.domain.audit.tags import AuditTagKind, append_tag
from src.domain.entities.work_item import WorkItem
from src.domain.enums.item_status import ItemStatus
from src.domain.errors import ClaimLostError, InvalidReferenceError
from src.domain.events.domain_events import ItemStatusChangedEvent
from src.domain.references import is_valid_reference
from src.domain.state_machine.status_state_machine import StatusStateMachine

logger = structlog.get_logger(__name__)

_state_machine = StatusStateMachine()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FinalizeOutcome(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"

    @property
    def status(self) -> ItemStatus:
        return ItemStatus.VINTED_DRAFT if self is FinalizeOutcome.DRAFT else ItemStatus.PUBLISHED


@dataclass
class FinalizeItemInput:
    item: WorkItem
    session_id: str
    outcome: FinalizeOutcome


@dataclass
class FinalizeItemOutput:
    item: WorkItem
    from_status: ItemStatus
    to_status: ItemStatus


class FinalizeItem:
    """
    Use case: Write a terminal status once the listing exists on Vinted.

    Both outcomes need a valid destination reference; nothing is written
    otherwise. Publishing also stamps `published_at` and appends the
    completion tag. The write is conditional on the row still being
    `processing`, so an item that already left the hand-off is never rewritten.
    """

    def __init__(self, store: ItemStore, event_publisher: EventPublisher) -> None:
        self._store = store
        self._event_publisher = event_publisher

    async def execute(self, input_data: FinalizeItemInput) -> FinalizeItemOutput:
        item = input_data.item
        to_status = input_data.outcome.status

        if not is_valid_reference(item.external_reference):
            raise InvalidReferenceError(item.external_reference)

        # May raise InvalidStatusTransitionError; the caller handles it
        _state_machine.validate_transition(item.status, to_status)

        if input_data.outcome is FinalizeOutcome.PUBLISHED:
            now = _utcnow()
            notes = append_tag(item.audit_notes, AuditTagKind.DONE, input_data.session_id, now)
            patch = ItemPatch(status=to_status, published_at=now, notes=notes)
            updated = item.with_changes(status=to_status, published_at=now, audit_notes=notes)
        else:
            patch = ItemPatch(status=to_status)
            updated = item.with_changes(status=to_status)

        affected = await self._store.conditional_update(
            item.kind, item.id, expected_status=item.status, patch=patch
        )
        if affected == 0:
            raise ClaimLostError(item.id, item.status)

        await self._event_publisher.publish(
            ItemStatusChangedEvent(
                item_id=item.id,
                kind=item.kind,
                from_status=item.status,
                to_status=to_status,
                session_id=input_data.session_id,
                external_reference=item.external_reference,
            )
        )

        logger.info(
            "item_finalized",
            item_id=item.id,
            kind=item.kind.value,
            from_status=item.status.value,
            to_status=to_status.value,
            session_id=input_data.session_id,
        )

        return FinalizeItemOutput(item=updated, from_status=item.status, to_status=to_status)
