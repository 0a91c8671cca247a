"""In-process event bus for domain events."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from ..domain.events import DomainEvent
from ..ports.event_publisher import EventPublisherPort
from ..ports.logger import LoggerPort

EventHandler = Callable[[DomainEvent], Awaitable[None] | None]


class InMemoryEventBus(EventPublisherPort):
    """Delivers events to subscribers in the publishing task.

    Handlers may be plain functions or coroutine functions. A failing handler
    is logged and does not stop delivery to the others. Published events are
    kept in a bounded history for inspection.
    """

    def __init__(self, logger: LoggerPort | None = None, history_size: int = 1000) -> None:
        self._logger = logger or self._create_default_logger()
        self._handlers: list[tuple[type[DomainEvent], EventHandler]] = []
        self._history: list[DomainEvent] = []
        self._history_size = history_size

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from .simple_logger import SimpleLogger

        return SimpleLogger()

    def subscribe(
        self, handler: EventHandler, event_type: type[DomainEvent] = DomainEvent
    ) -> Callable[[], None]:
        """Register a handler for an event class and its subclasses.

        Returns:
            A callable that removes the subscription
        """
        entry = (event_type, handler)
        self._handlers.append(entry)

        def unsubscribe() -> None:
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    async def publish(self, event: DomainEvent) -> None:
        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[0]

        for event_type, handler in list(self._handlers):
            if not isinstance(event, event_type):
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.error(
                    f"Event handler failed: {e}",
                    event_type=event.event_type,
                    aggregate_id=event.aggregate_id,
                )

    def history(self, event_type: type[DomainEvent] | None = None) -> list[DomainEvent]:
        """Published events, optionally filtered by class."""
        if event_type is None:
            return list(self._history)
        return [event for event in self._history if isinstance(event, event_type)]

    def event_types(self) -> list[str]:
        """The ``event_type`` strings of the history, in order."""
        return [event.event_type for event in self._history]

    def clear(self) -> None:
        """Forget the history (useful for testing)."""
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)

    def __repr__(self) -> str:
        return f"InMemoryEventBus(subscribers={len(self._handlers)}, events={len(self._history)})"


def describe(event: DomainEvent) -> dict[str, Any]:
    """Flatten an event into a JSON-ready dict."""
    return event.model_dump(mode="json")
