"""Audit Scope - Custom Action Data Structures.

This module defines the data-only pieces of the custom action pipeline.
Dispatching lives in audit_scope.services.actions; registration lives in
audit_scope.config.

Design Philosophy:
    - Data classes are here (shared by config and services)
    - The handler signature is a plain callable taking the scope
    - Dispatch is synchronous and in registration order
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from .config import ActionType

if TYPE_CHECKING:
    from audit_scope.scope import AuditScope


# Handler signature: receives the scope, may call any scope mutator
ActionHandler = Callable[["AuditScope"], None]


@dataclass(frozen=True)
class CustomAction:
    """A handler registered for one lifecycle point.

    Attributes:
        action_type: When the handler runs
        handler: Callable invoked with the scope

    Example:
        >>> def skip_health_checks(scope):
        ...     if scope.event_type == "Health:Check":
        ...         scope.discard()
        >>> action = CustomAction(ActionType.ON_SCOPE_CREATED, skip_health_checks)
    """

    action_type: ActionType
    handler: ActionHandler

    def __post_init__(self) -> None:
        if not isinstance(self.action_type, ActionType):
            raise TypeError(f"action_type must be ActionType, got {self.action_type!r}")
        if not callable(self.handler):
            raise TypeError("Custom action handler must be callable")

    @property
    def name(self) -> str:
        """Readable handler name for logs and errors."""
        handler = self.handler
        return getattr(handler, "__qualname__", None) or type(handler).__name__
