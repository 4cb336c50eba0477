from abc import ABC, abstractmethod

from src.domain.events.domain_events import DomainEvent


class EventPublisher(ABC):
    """
    Port for announcing hand-off events to downstream sale tracking.

    Publishing happens after the store write has committed. Implementations
    must not raise: a lost event never rolls back a claim or a status change.
    """

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        ...
