from src.application.interfaces.event_publisher import EventPublisher
from src.config import settings
from src.infrastructure.messaging.noop_publisher import NoOpEventPublisher
from src.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher


def build_event_publisher(rabbitmq_url: str | None = settings.rabbitmq_url) -> EventPublisher:
    if rabbitmq_url:
        return RabbitMQPublisher(rabbitmq_url)
    return NoOpEventPublisher()
