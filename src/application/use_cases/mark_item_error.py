from dataclasses import dataclass

import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.application.interfaces.item_store import ItemPatch, ItemStore
from src.domain.entities.work_item import WorkItem
from src.domain.enums.item_status import ItemStatus
from src.domain.errors import ClaimLostError
from src.domain.events.domain_events import ItemStatusChangedEvent
from src.domain.state_machine.status_state_machine import StatusStateMachine

logger = structlog.get_logger(__name__)

_state_machine = StatusStateMachine()


@dataclass
class MarkItemErrorInput:
    item: WorkItem
    session_id: str
    reason: str | None = None


class MarkItemError:
    """
    Use case: Operator escape hatch, parks an item in `error`.

    Reachable from `ready` and `processing`. The notes are left as they are
    so the audit trail survives for diagnosis.
    """

    def __init__(self, store: ItemStore, event_publisher: EventPublisher) -> None:
        self._store = store
        self._event_publisher = event_publisher

    async def execute(self, input_data: MarkItemErrorInput) -> WorkItem:
        item = input_data.item
        _state_machine.validate_transition(item.status, ItemStatus.ERROR)

        affected = await self._store.conditional_update(
            item.kind,
            item.id,
            expected_status=item.status,
            patch=ItemPatch(status=ItemStatus.ERROR),
        )
        if affected == 0:
            raise ClaimLostError(item.id, item.status)

        await self._event_publisher.publish(
            ItemStatusChangedEvent(
                item_id=item.id,
                kind=item.kind,
                from_status=item.status,
                to_status=ItemStatus.ERROR,
                session_id=input_data.session_id,
                external_reference=item.external_reference,
            )
        )

        logger.warning(
            "item_marked_error",
            item_id=item.id,
            kind=item.kind.value,
            from_status=item.status.value,
            session_id=input_data.session_id,
            reason=input_data.reason,
        )
        return item.with_changes(status=ItemStatus.ERROR)
