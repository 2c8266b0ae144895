"""Callable-backed data provider.

Adapts two plain functions to the provider contract, for hosts that
want to route events somewhere without writing a provider class.
"""

from __future__ import annotations

from typing import Any, Callable

from audit_scope.types import AuditEvent

from .base import AuditDataProvider

InsertHandler = Callable[[AuditEvent], Any]
UpdateHandler = Callable[[Any, AuditEvent], None]


class DynamicDataProvider(AuditDataProvider):
    """Provider built from an insert callable and an update callable.

    Both are required: on_insert creates a record and returns its id,
    on_update overwrites the record with that id.

    Example:
        >>> records = {}
        >>> def on_insert(event):
        ...     records[len(records)] = event.to_dict()
        ...     return len(records) - 1
        >>> def on_update(event_id, event):
        ...     records[event_id] = event.to_dict()
        >>> provider = DynamicDataProvider(on_insert, on_update)
    """

    def __init__(self, on_insert: InsertHandler, on_update: UpdateHandler):
        if not callable(on_insert):
            raise TypeError("on_insert must be callable")
        if not callable(on_update):
            raise TypeError("on_update must be callable")
        self._on_insert = on_insert
        self._on_update = on_update

    def insert_event(self, event: AuditEvent) -> Any:
        return self._on_insert(event)

    def update_event(self, event_id: Any, event: AuditEvent) -> None:
        self._on_update(event_id, event)
