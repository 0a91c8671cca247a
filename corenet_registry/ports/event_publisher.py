"""Event publisher port - outlet for domain events."""

from abc import ABC, abstractmethod

from ..domain.events import DomainEvent


class EventPublisherPort(ABC):
    """Abstract interface for publishing domain events.

    The registry and the link coordinator publish through this port; whatever
    renders or records the events lives behind it.
    """

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Publish one event.

        Implementations must not raise because of a failing subscriber.
        """
        ...
