"""In-memory data provider.

Keeps a JSON-form copy of every event in process memory. Useful for
tests, for debugging, and as a reference implementation of the provider
contract. Not a storage backend: contents vanish with the process.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from typing import Any, Optional

from audit_scope.types import AuditEvent

from .base import AuditDataProvider

logger = logging.getLogger(__name__)


class InMemoryDataProvider(AuditDataProvider):
    """Thread-safe in-memory provider.

    Each record is stored as the dict returned by AuditEvent.to_dict()
    at the moment of the insert/update, so later mutation of the live
    event does not leak into stored records.

    Attributes:
        max_events: Drop the oldest records beyond this count (None = unbounded)

    Example:
        >>> provider = InMemoryDataProvider()
        >>> set_default_provider(provider)
        >>> with AuditScope("Order:Update", lambda: order):
        ...     order.status = -1
        >>> provider.get_all_events()[0]["Target"]["New"]["status"]
        -1
    """

    def __init__(self, max_events: Optional[int] = None):
        if max_events is not None and max_events <= 0:
            raise ValueError("max_events must be positive")
        self.max_events = max_events
        self._events: dict[str, dict] = {}
        self._lock = threading.Lock()

    def insert_event(self, event: AuditEvent) -> str:
        event_id = str(uuid.uuid4())
        record = event.to_dict()
        with self._lock:
            self._events[event_id] = record
            if self.max_events is not None:
                while len(self._events) > self.max_events:
                    oldest = next(iter(self._events))
                    del self._events[oldest]
        logger.debug(f"Stored event {event_id} ({event.event_type})")
        return event_id

    def update_event(self, event_id: Any, event: AuditEvent) -> None:
        record = event.to_dict()
        with self._lock:
            if event_id not in self._events:
                raise KeyError(f"Unknown event id: {event_id}")
            self._events[event_id] = record
        logger.debug(f"Replaced event {event_id} ({event.event_type})")

    def get_event(self, event_id: str) -> Optional[dict]:
        """Return the stored record, or None."""
        with self._lock:
            record = self._events.get(event_id)
        return None if record is None else copy.deepcopy(record)

    def get_all_events(self) -> list[dict]:
        """Return all stored records in insertion order."""
        with self._lock:
            return [copy.deepcopy(record) for record in self._events.values()]

    def get_events_by_type(self, event_type: str) -> list[dict]:
        """Return stored records whose EventType matches."""
        return [r for r in self.get_all_events() if r.get("EventType") == event_type]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
