from dataclasses import dataclass

from src.application.interfaces.item_store import ItemStore
from src.domain.audit.tags import AuditTag, parse_tags
from src.domain.enums.item_status import ItemKind, ItemStatus
from src.domain.errors import ItemNotFoundError, WrongStateError


@dataclass
class GetAuditTrailInput:
    kind: ItemKind
    item_id: str


@dataclass
class GetAuditTrailOutput:
    kind: ItemKind
    item_id: str
    status: ItemStatus
    tags: list[AuditTag]
    notes: str | None


class GetAuditTrail:
    """Use case: Reconstruct who claimed and finished an item from its notes."""

    def __init__(self, store: ItemStore) -> None:
        self._store = store

    async def execute(self, input_data: GetAuditTrailInput) -> GetAuditTrailOutput:
        raw = await self._store.get(input_data.kind, input_data.item_id)
        if raw is None:
            raise ItemNotFoundError(input_data.kind, input_data.item_id)

        try:
            status = ItemStatus(raw.get("status"))
        except ValueError as exc:
            raise WrongStateError(
                f"Unknown status on {input_data.kind.value} item {input_data.item_id}",
                status=raw.get("status"),
            ) from exc

        notes = raw.get("sale_notes")
        return GetAuditTrailOutput(
            kind=input_data.kind,
            item_id=input_data.item_id,
            status=status,
            tags=parse_tags(notes),
            notes=notes,
        )
