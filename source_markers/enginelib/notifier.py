"""Change notifications pushed to the editor client."""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Protocol

from .marker_store import MarkerStore
from .model import AutoSelect

logger = logging.getLogger(__name__)

MARKERS_CHANGED = "markers_changed"


@dataclass
class ClientEvent:
    type: str
    data: Dict[str, Any]
    timestamp: float = field(default_factory=time.time)

    def to_json(self) -> Dict[str, Any]:
        return {"type": self.type, "data": self.data, "timestamp": self.timestamp}


class EventChannel(Protocol):
    def enqueue(self, event: ClientEvent) -> None:
        ...


class ClientEventQueue:
    """Bounded in-process queue of events awaiting delivery to the client."""

    def __init__(self, maxlen: int = 100):
        if maxlen < 1:
            raise ValueError(f"event queue size must be at least 1, got {maxlen}")
        self._events: Deque[ClientEvent] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def enqueue(self, event: ClientEvent) -> None:
        with self._lock:
            if self._events and len(self._events) == self._events.maxlen:
                logger.warning("Client event queue full; dropping oldest %s event", self._events[0].type)
            self._events.append(event)

    def drain(self) -> List[ClientEvent]:
        with self._lock:
            events = list(self._events)
            self._events.clear()
        return events

    def pending(self) -> int:
        with self._lock:
            return len(self._events)


class Notifier:
    def __init__(self, store: MarkerStore, channel: EventChannel):
        self.store = store
        self.channel = channel

    def build_change_event(self, auto_select: AutoSelect = AutoSelect.NONE) -> Dict[str, Any]:
        return {
            "markers_state": self.store.state_view(),
            "auto_select": int(auto_select),
        }

    def fire(self, auto_select: AutoSelect = AutoSelect.NONE) -> ClientEvent:
        event = ClientEvent(MARKERS_CHANGED, self.build_change_event(auto_select))
        self.channel.enqueue(event)
        return event
