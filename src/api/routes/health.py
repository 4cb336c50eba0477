import asyncio

from fastapi import APIRouter, Depends

from src.api.dependencies import get_item_store
from src.application.interfaces.item_store import ItemStore
from src.config import settings
from src.domain.enums.item_status import ItemKind
from src.domain.errors import StoreUnavailableError

router = APIRouter(tags=["health"])

# Point lookup that never matches; only proves the store answers
_PROBE_ID = "00000000-0000-0000-0000-000000000000"


def _check_rabbitmq(url: str) -> None:
    import pika

    connection = pika.BlockingConnection(pika.URLParameters(url))
    connection.close()


@router.get("/health")
async def health_check(store: ItemStore = Depends(get_item_store)) -> dict:  # type: ignore[type-arg]
    """Liveness + dependency health check."""
    store_status = "connected"
    try:
        for kind in ItemKind:
            await store.get(kind, _PROBE_ID)
    except StoreUnavailableError as exc:
        store_status = f"error: {exc}"

    # RabbitMQ is optional: events are dropped when no broker is configured
    rabbitmq_status = "disabled"
    if settings.rabbitmq_url:
        rabbitmq_status = "connected"
        try:
            await asyncio.get_running_loop().run_in_executor(
                None, _check_rabbitmq, settings.rabbitmq_url
            )
        except Exception as exc:
            rabbitmq_status = f"error: {exc}"

    overall = (
        "healthy"
        if store_status == "connected" and rabbitmq_status in ("connected", "disabled")
        else "degraded"
    )

    return {
        "status": overall,
        "store": store_status,
        "rabbitmq": rabbitmq_status,
    }
