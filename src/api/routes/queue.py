from fastapi import APIRouter, Depends

from src.api.dependencies import get_build_queue_use_case
from src.api.schemas.item_responses import QueueResponse, WorkItemResponse
from src.application.use_cases.build_queue import BuildQueue

router = APIRouter(tags=["queue"])


@router.get("/queue", response_model=QueueResponse)
async def get_queue(use_case: BuildQueue = Depends(get_build_queue_use_case)) -> QueueResponse:
    """Ready and processing items from both sources, oldest first."""
    snapshot = await use_case.execute()
    return QueueResponse(
        items=[WorkItemResponse.model_validate(item) for item in snapshot.items],
        total=len(snapshot),
        failed_kinds=sorted(snapshot.failed_kinds, key=lambda kind: kind.value),
        skipped_records=snapshot.skipped_records,
        retry_suggested=snapshot.retry_suggested,
    )
