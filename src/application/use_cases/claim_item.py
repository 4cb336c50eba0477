from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.item_store import ItemPatch, ItemStore
from src.domain.audit.tags import AuditTagKind, append_tag
from src.domain.entities.work_item import ClaimedItem, WorkItem
from src.domain.enums.item_status import ItemStatus
from src.domain.errors import ClaimLostError, WrongStateError
from src.domain.events.domain_events import ItemClaimedEvent
from src.domain.state_machine.status_state_machine import StatusStateMachine

logger = structlog.get_logger(__name__)

_state_machine = StatusStateMachine()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ClaimItemInput:
    item: WorkItem
    session_id: str


class ClaimItem:
    """
    Use case: Exclusively claim a ready item for one session.

    The claim is a compare-and-swap on the row's status: the status flip and
    the lock tag are written together, and only if the row is still `ready`.
    Exactly one of several racing sessions sees one affected row; the others
    get ClaimLostError and must refresh their queue.
    """

    def __init__(self, store: ItemStore, event_publisher: EventPublisher) -> None:
        self._store = store
        self._event_publisher = event_publisher

    async def execute(self, input_data: ClaimItemInput) -> ClaimedItem:
        item = input_data.item

        # Fail fast on a stale local view; storage is not touched.
        if item.status != ItemStatus.READY:
            raise WrongStateError(
                f"Cannot start: {item.kind.value} {item.id} is {item.status.value}.",
                status=item.status,
            )
        _state_machine.validate_transition(item.status, ItemStatus.PROCESSING)

        now = _utcnow()
        notes = append_tag(item.audit_notes, AuditTagKind.LOCK, input_data.session_id, now)
        affected = await self._store.conditional_update(
            item.kind,
            item.id,
            expected_status=ItemStatus.READY,
            patch=ItemPatch(status=ItemStatus.PROCESSING, notes=notes),
        )

        if affected == 0:
            logger.warning(
                "claim_lost",
                item_id=item.id,
                kind=item.kind.value,
                session_id=input_data.session_id,
            )
            raise ClaimLostError(item.id, ItemStatus.READY)

        await self._event_publisher.publish(
            ItemClaimedEvent(item_id=item.id, kind=item.kind, session_id=input_data.session_id)
        )

        logger.info(
            "item_claimed",
            item_id=item.id,
            kind=item.kind.value,
            session_id=input_data.session_id,
        )

        return ClaimedItem(
            item=item.with_changes(status=ItemStatus.PROCESSING, audit_notes=notes),
            session_id=input_data.session_id,
            claimed_at=now,
        )
