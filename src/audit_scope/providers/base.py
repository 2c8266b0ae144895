"""Base Data Provider Abstract Class.

All persistence backends must inherit from AuditDataProvider.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from audit_scope.types import AuditEvent

logger = logging.getLogger(__name__)


class AuditDataProvider(ABC):
    """Abstract base class for all audit data providers.

    All providers must implement:
    - insert_event(): Persist a new record and return its id
    - update_event(): Overwrite the record with a given id

    Providers may optionally override:
    - insert_event_async() / update_event_async(): Native async I/O.
      The defaults call the sync methods inline.

    Contract:
        Calls are synchronous and may block. Exceptions propagate; the
        scope wraps them in ProviderError. Providers must copy whatever
        they keep, since the scope keeps mutating the event after an
        early insert (AuditEvent.to_dict() returns an independent copy).

    Example:
        >>> class PrintProvider(AuditDataProvider):
        ...     def insert_event(self, event):
        ...         print(event.to_json())
        ...         return event.event_type
        ...     def update_event(self, event_id, event):
        ...         print(event_id, event.to_json())
    """

    @property
    def provider_name(self) -> str:
        """Name used in logs and errors."""
        return type(self).__name__

    @abstractmethod
    def insert_event(self, event: AuditEvent) -> Any:
        """Persist a new record.

        Args:
            event: The event in its current state

        Returns:
            Opaque id usable with update_event()
        """
        ...

    @abstractmethod
    def update_event(self, event_id: Any, event: AuditEvent) -> None:
        """Overwrite the record identified by event_id.

        Args:
            event_id: Id returned by a previous insert_event()
            event: The event in its current state
        """
        ...

    async def insert_event_async(self, event: AuditEvent) -> Any:
        """Async insert. Defaults to the sync implementation."""
        return self.insert_event(event)

    async def update_event_async(self, event_id: Any, event: AuditEvent) -> None:
        """Async update. Defaults to the sync implementation."""
        self.update_event(event_id, event)

    def __repr__(self) -> str:
        return f"{self.provider_name}()"
