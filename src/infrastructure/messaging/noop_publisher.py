"""Publisher used when no broker is configured (operator consoles, tests)."""
import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.domain.events.domain_events import DomainEvent

logger = structlog.get_logger(__name__)


class NoOpEventPublisher(EventPublisher):
    """Drops every event after a debug line naming the item it concerned."""

    async def publish(self, event: DomainEvent) -> None:
        logger.debug(
            "event_dropped_no_broker",
            event_type=type(event).__name__,
            item_id=getattr(event, "item_id", None),
        )
