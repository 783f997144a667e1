"""
Event Service - Build lifecycle notifications

Provides:
- EventBus.subscribe(): Register a handler for one event type (or all)
- EventBus.emit(): Deliver an event to every handler, best-effort
- Event types standardization

A failing handler is logged and skipped; it never aborts the build that
emitted the event.
"""
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Dict[str, Any]], None]

ALL_EVENTS = "*"


class EventType:
    """Standard event types"""
    BUILD_STARTED = "build.started"  # Payload: request
    BUILD_PROGRESS = "build.progress"  # Payload: progress (0-1), status
    BUILD_FINISHED = "build.finished"  # Payload: result


class EventBus:
    """In-process publish/subscribe for one build coordinator"""

    def __init__(self):
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler

        Args:
            event_type: EventType constant, or "*" for every event
            handler: Called as handler(event_type, payload)

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._subscribers[event_type].append(handler)

        def unsubscribe():
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def emit(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """
        Deliver an event

        Returns:
            Number of handlers that ran without raising
        """
        payload = payload or {}
        with self._lock:
            handlers = list(self._subscribers.get(event_type, [])) + list(self._subscribers.get(ALL_EVENTS, []))

        delivered = 0
        for handler in handlers:
            try:
                handler(event_type, payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"[EventBus] Handler for '{event_type}' failed: {e}")
        return delivered

    def subscriber_count(self, event_type: Optional[str] = None) -> int:
        with self._lock:
            if event_type is None:
                return sum(len(h) for h in self._subscribers.values())
            return len(self._subscribers.get(event_type, []))


__all__ = ["EventType", "EventBus", "EventHandler", "ALL_EVENTS"]
