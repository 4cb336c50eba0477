from dataclasses import dataclass

import structlog

from src.application.interfaces.item_store import ItemPatch, ItemStore
from src.domain.entities.work_item import WorkItem
from src.domain.errors import WrongStateError

logger = structlog.get_logger(__name__)


@dataclass
class RecordReferenceInput:
    item: WorkItem
    reference: str


class RecordDestinationReference:
    """
    Use case: Save the marketplace URL typed by the operator.

    A plain last-write-wins update: only the claiming session edits this
    field. The value is stored as typed; an empty value clears it. Validity
    is checked later, when finalizing.
    """

    def __init__(self, store: ItemStore) -> None:
        self._store = store

    async def execute(self, input_data: RecordReferenceInput) -> WorkItem:
        item = input_data.item
        if item.status.is_terminal:
            raise WrongStateError(
                f"{item.kind.value} {item.id} is already {item.status.value}.", status=item.status
            )

        reference = input_data.reference or None
        patch = (
            ItemPatch(destination_reference=reference)
            if reference is not None
            else ItemPatch(clear_reference=True)
        )
        await self._store.update(item.kind, item.id, patch)

        logger.info(
            "destination_reference_saved",
            item_id=item.id,
            kind=item.kind.value,
            cleared=reference is None,
        )
        return item.with_changes(external_reference=reference)
