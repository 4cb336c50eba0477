"""
RabbitMQ event publisher.

Uses pika in a thread-pool executor so blocking I/O doesn't stall the
asyncio event loop. A new connection is opened per publish call; hand-off
events are a handful per item, so there is no pool.
"""
import asyncio
import json
from functools import partial

import pika
import structlog

from src.application.interfaces.event_publisher import EventPublisher
from src.config import settings
from src.domain.events.domain_events import (
    DomainEvent,
    ItemClaimedEvent,
    ItemStatusChangedEvent,
)

logger = structlog.get_logger(__name__)


def _event_to_routing_key(event: DomainEvent) -> str:
    if isinstance(event, ItemClaimedEvent):
        return "item.claimed"
    if isinstance(event, ItemStatusChangedEvent):
        return f"item.status.{event.to_status.value}"
    return "event.unknown"


def _serialise_event(event: DomainEvent) -> str:
    payload: dict = {  # type: ignore[type-arg]
        "event_type": _event_to_routing_key(event),
        "event_id": str(event.event_id),
        "occurred_at": event.occurred_at.isoformat(),
    }

    if isinstance(event, ItemClaimedEvent):
        payload.update(
            {"item_id": event.item_id, "kind": event.kind.value, "session_id": event.session_id}
        )
    elif isinstance(event, ItemStatusChangedEvent):
        payload.update(
            {
                "item_id": event.item_id,
                "kind": event.kind.value,
                "from_status": event.from_status.value if event.from_status else None,
                "to_status": event.to_status.value,
                "session_id": event.session_id,
                "external_reference": event.external_reference,
            }
        )

    return json.dumps(payload, default=str)


def _blocking_publish(rabbitmq_url: str, exchange: str, routing_key: str, body: str) -> None:
    connection = pika.BlockingConnection(pika.URLParameters(rabbitmq_url))
    try:
        channel = connection.channel()
        channel.exchange_declare(exchange=exchange, exchange_type="topic", durable=True)
        channel.basic_publish(
            exchange=exchange,
            routing_key=routing_key,
            body=body.encode(),
            properties=pika.BasicProperties(
                delivery_mode=pika.DeliveryMode.Persistent,
                content_type="application/json",
            ),
        )
    finally:
        connection.close()


class RabbitMQPublisher(EventPublisher):
    """Publishes hand-off events to a RabbitMQ topic exchange."""

    def __init__(self, rabbitmq_url: str, exchange: str = settings.event_exchange) -> None:
        self._url = rabbitmq_url
        self._exchange = exchange

    async def publish(self, event: DomainEvent) -> None:
        routing_key = _event_to_routing_key(event)
        body = _serialise_event(event)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(_blocking_publish, self._url, self._exchange, routing_key, body),
            )
            logger.debug("event_published", routing_key=routing_key, event_id=str(event.event_id))
        except Exception as exc:
            logger.error(
                "failed_to_publish_event",
                routing_key=routing_key,
                error=str(exc),
            )
            # Not re-raised: the hand-off write is already committed.
