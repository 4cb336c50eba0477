"""Map hand-off errors onto HTTP responses."""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.schemas.item_responses import ErrorResponse
from src.domain.errors import (
    ClaimLostError,
    HandoffError,
    InvalidReferenceError,
    ItemNotFoundError,
    StoreUnavailableError,
    WorkflowIncompleteError,
    WrongStateError,
)

logger = structlog.get_logger(__name__)

# Most specific first: lookups walk this in order.
STATUS_CODES: tuple[tuple[type[HandoffError], int], ...] = (
    (WrongStateError, status.HTTP_409_CONFLICT),
    (ClaimLostError, status.HTTP_409_CONFLICT),
    (WorkflowIncompleteError, status.HTTP_409_CONFLICT),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvalidReferenceError, 422),
    (ItemNotFoundError, status.HTTP_404_NOT_FOUND),
)


def status_code_for(exc: HandoffError) -> int:
    for error_type, code in STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def handoff_error_handler(request: Request, exc: HandoffError) -> JSONResponse:
    code = status_code_for(exc)
    logger.warning(
        "request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        detail=str(exc),
        status_code=code,
    )
    body = ErrorResponse(error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HandoffError, handoff_error_handler)  # type: ignore[arg-type]
