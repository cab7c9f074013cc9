"""
Event sinks: observers notified after every successful board mutation.

The engine never keeps a module-level registry of listeners. Callers pass
an EventSink into the operation pipeline (service.apply, BoardSession,
the HTTP app factory), so effects stay traceable and testable in isolation.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .models import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardEvent:
    """One applied mutation."""
    event_type: str                 # e.g. "card_added", "column_deleted"
    board_id: str
    entity_id: Optional[str] = None
    external_hash: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


class EventSink:
    """Interface: receives BoardEvents."""

    def emit(self, event: BoardEvent) -> None:
        raise NotImplementedError


class NullEventSink(EventSink):
    """Discards every event."""

    def emit(self, event: BoardEvent) -> None:
        pass


class RecordingEventSink(EventSink):
    """Keeps events in a list; handy for tests and the REPL history."""

    def __init__(self):
        self.events: List[BoardEvent] = []

    def emit(self, event: BoardEvent) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [e.event_type for e in self.events]


class CallbackEventSink(EventSink):
    """Routes events to callbacks registered per event type ("*" for all)."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable[[BoardEvent], None]]] = {}

    def subscribe(self, event_type: str, callback: Callable[[BoardEvent], None]) -> None:
        """Register a callback for an event type."""
        self.subscribers.setdefault(event_type, []).append(callback)

    def emit(self, event: BoardEvent) -> None:
        callbacks = self.subscribers.get(event.event_type, []) + self.subscribers.get("*", [])
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                # The mutation is already applied; a failing observer only gets logged
                logger.exception("Error in %s callback", event.event_type)
