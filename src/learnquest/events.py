"""In-process event bus delivering engine notifications to subscribers."""

from collections.abc import Callable, Iterable

import structlog

from learnquest.models.events import ProgressEvent

logger = structlog.get_logger()

EventCallback = Callable[[ProgressEvent], None]


class EventBus:
    """Fan-out of typed progress events to registered callbacks.

    A subscriber that raises is logged and skipped; it never affects other
    subscribers or the engine state, which is already committed when events
    are published.
    """

    def __init__(self) -> None:
        self._subscribers: list[EventCallback] = []

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: ProgressEvent) -> None:
        logger.debug("event_published", event_type=event.type, session_id=event.session_id)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "event_subscriber_failed",
                    event_type=event.type,
                    subscriber=getattr(callback, "__qualname__", repr(callback)),
                )

    def publish_all(self, events: Iterable[ProgressEvent]) -> None:
        for event in events:
            self.publish(event)


class EventRecorder:
    """Subscriber that keeps every event it sees, in order."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[ProgressEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()
