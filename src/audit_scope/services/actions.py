"""Custom Action Manager Service.

Dispatches registered custom actions at the two scope lifecycle points.
Unlike fire-and-forget hooks, custom actions are part of the scope's
control flow: they may discard the scope or edit the event, and any
failure aborts the triggering scope operation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from audit_scope.types import ActionError, ActionType, CustomAction

if TYPE_CHECKING:
    from audit_scope.scope import AuditScope

logger = logging.getLogger(__name__)


class CustomActionManager:
    """Runs custom actions for a scope.

    Design principles:
    - Ordered: handlers run in registration order
    - Synchronous: each handler returns before the next starts
    - Fail-closed: the first failing handler stops the pipeline and its
      error surfaces as ActionError from the scope operation

    The action list is captured when the manager is created, so actions
    registered while a scope is running only affect later scopes.
    """

    def __init__(self, actions: Iterable[CustomAction]) -> None:
        """Initialize action manager.

        Args:
            actions: Registered custom actions, in registration order
        """
        self._actions = tuple(actions)

    @property
    def has_actions(self) -> bool:
        """Check if any action is registered."""
        return bool(self._actions)

    def count(self, action_type: ActionType) -> int:
        """Number of handlers registered for a lifecycle point."""
        return sum(1 for action in self._actions if action.action_type is action_type)

    def dispatch(self, action_type: ActionType, scope: "AuditScope") -> None:
        """Run every handler registered for action_type against scope.

        Args:
            action_type: Lifecycle point being reached
            scope: Scope passed to each handler

        Raises:
            ActionError: If a handler raises
        """
        for action in self._actions:
            if action.action_type is not action_type:
                continue
            try:
                action.handler(scope)
            except Exception as e:
                logger.warning(
                    f"Custom action {action.name} failed on {action_type.value} "
                    f"for {scope.event_type}: {e}"
                )
                raise ActionError(action_type, action.name, e) from e


__all__ = ["CustomActionManager"]
