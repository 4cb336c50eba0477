"""
Per-item hand-off actions for headless agents.

Each request re-reads the row first, so the status a use case checks is the
freshest the caller could have. The store's conditional write still decides
races between agents.
"""
from fastapi import APIRouter, Depends

from src.api.dependencies import (
    get_audit_trail_use_case,
    get_claim_item_use_case,
    get_finalize_item_use_case,
    get_item_store,
    get_mark_item_error_use_case,
    get_record_reference_use_case,
    get_session_id,
)
from src.api.schemas.item_responses import (
    AuditTagResponse,
    AuditTrailResponse,
    ClaimResponse,
    MarkErrorRequest,
    ReferenceRequest,
    StatusChangeResponse,
    WorkItemResponse,
)
from src.application.interfaces.item_store import ItemStore
from src.application.use_cases.claim_item import ClaimItem, ClaimItemInput
from src.application.use_cases.finalize_item import (
    FinalizeItem,
    FinalizeItemInput,
    FinalizeOutcome,
)
from src.application.use_cases.get_audit_trail import GetAuditTrail, GetAuditTrailInput
from src.application.use_cases.mark_item_error import MarkItemError, MarkItemErrorInput
from src.application.use_cases.record_reference import (
    RecordDestinationReference,
    RecordReferenceInput,
)
from src.domain.entities.work_item import WorkItem
from src.domain.enums.item_status import ItemKind
from src.domain.errors import ItemNotFoundError, WrongStateError
from src.domain.normalization.records import normalize_record

router = APIRouter(prefix="/items", tags=["items"])


async def _load_item(store: ItemStore, kind: ItemKind, item_id: str) -> WorkItem:
    raw = await store.get(kind, item_id)
    if raw is None:
        raise ItemNotFoundError(kind, item_id)
    try:
        return normalize_record(kind, raw)
    except (KeyError, ValueError) as exc:
        raise WrongStateError(
            f"{kind.value} item {item_id} cannot be handed off: unreadable row ({exc})",
            status=raw.get("status"),
        ) from exc


@router.post("/{kind}/{item_id}/claim", response_model=ClaimResponse)
async def claim_item(
    kind: ItemKind,
    item_id: str,
    session_id: str = Depends(get_session_id),
    store: ItemStore = Depends(get_item_store),
    use_case: ClaimItem = Depends(get_claim_item_use_case),
) -> ClaimResponse:
    item = await _load_item(store, kind, item_id)
    claimed = await use_case.execute(ClaimItemInput(item=item, session_id=session_id))
    return ClaimResponse(
        item=WorkItemResponse.model_validate(claimed.item),
        session_id=claimed.session_id,
        claimed_at=claimed.claimed_at,
    )


@router.put(
    "/{kind}/{item_id}/reference",
    response_model=WorkItemResponse,
    dependencies=[Depends(get_session_id)],
)
async def record_reference(
    kind: ItemKind,
    item_id: str,
    body: ReferenceRequest,
    store: ItemStore = Depends(get_item_store),
    use_case: RecordDestinationReference = Depends(get_record_reference_use_case),
) -> WorkItemResponse:
    item = await _load_item(store, kind, item_id)
    updated = await use_case.execute(RecordReferenceInput(item=item, reference=body.reference))
    return WorkItemResponse.model_validate(updated)


async def _finalize(
    use_case: FinalizeItem, item: WorkItem, session_id: str, outcome: FinalizeOutcome
) -> StatusChangeResponse:
    result = await use_case.execute(
        FinalizeItemInput(item=item, session_id=session_id, outcome=outcome)
    )
    return StatusChangeResponse(
        item=WorkItemResponse.model_validate(result.item),
        from_status=result.from_status,
        to_status=result.to_status,
    )


@router.post("/{kind}/{item_id}/draft", response_model=StatusChangeResponse)
async def mark_draft(
    kind: ItemKind,
    item_id: str,
    session_id: str = Depends(get_session_id),
    store: ItemStore = Depends(get_item_store),
    use_case: FinalizeItem = Depends(get_finalize_item_use_case),
) -> StatusChangeResponse:
    item = await _load_item(store, kind, item_id)
    return await _finalize(use_case, item, session_id, FinalizeOutcome.DRAFT)


@router.post("/{kind}/{item_id}/publish", response_model=StatusChangeResponse)
async def mark_published(
    kind: ItemKind,
    item_id: str,
    session_id: str = Depends(get_session_id),
    store: ItemStore = Depends(get_item_store),
    use_case: FinalizeItem = Depends(get_finalize_item_use_case),
) -> StatusChangeResponse:
    item = await _load_item(store, kind, item_id)
    return await _finalize(use_case, item, session_id, FinalizeOutcome.PUBLISHED)


@router.post("/{kind}/{item_id}/error", response_model=StatusChangeResponse)
async def mark_error(
    kind: ItemKind,
    item_id: str,
    body: MarkErrorRequest | None = None,
    session_id: str = Depends(get_session_id),
    store: ItemStore = Depends(get_item_store),
    use_case: MarkItemError = Depends(get_mark_item_error_use_case),
) -> StatusChangeResponse:
    item = await _load_item(store, kind, item_id)
    reason = body.reason if body else None
    updated = await use_case.execute(
        MarkItemErrorInput(item=item, session_id=session_id, reason=reason)
    )
    return StatusChangeResponse(
        item=WorkItemResponse.model_validate(updated),
        from_status=item.status,
        to_status=updated.status,
    )


@router.get("/{kind}/{item_id}/audit", response_model=AuditTrailResponse)
async def get_audit_trail(
    kind: ItemKind,
    item_id: str,
    use_case: GetAuditTrail = Depends(get_audit_trail_use_case),
) -> AuditTrailResponse:
    trail = await use_case.execute(GetAuditTrailInput(kind=kind, item_id=item_id))
    return AuditTrailResponse(
        item_id=trail.item_id,
        kind=trail.kind,
        status=trail.status,
        tags=[
            AuditTagResponse(kind=tag.kind, session_id=tag.session_id, timestamp=tag.timestamp)
            for tag in trail.tags
        ],
        notes=trail.notes,
    )
