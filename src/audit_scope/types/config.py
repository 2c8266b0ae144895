"""Audit Scope - Lifecycle Enums.

This module defines the enums that parameterize a scope: the creation
policy (when and how many times an event is persisted), the custom action
lifecycle points, and the scope state.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal


class EventCreationPolicy(Enum):
    """Strategy controlling when and how many times an event is persisted.

    Attributes:
        INSERT_ON_END: Insert the final event once, when the scope ends (default)
        INSERT_ON_START_REPLACE_ON_END: Insert a partial event when the scope
            is created, then update that same record when the scope ends
        INSERT_ON_START_INSERT_ON_END: Insert a partial event when the scope
            is created and an independent final event when it ends
        MANUAL: Never persist automatically; the caller calls save()
    """
    INSERT_ON_END = "insert_on_end"
    INSERT_ON_START_REPLACE_ON_END = "insert_on_start_replace_on_end"
    INSERT_ON_START_INSERT_ON_END = "insert_on_start_insert_on_end"
    MANUAL = "manual"

    @property
    def inserts_on_start(self) -> bool:
        """Whether a partial event is inserted when the scope is created."""
        return self in (
            EventCreationPolicy.INSERT_ON_START_REPLACE_ON_END,
            EventCreationPolicy.INSERT_ON_START_INSERT_ON_END,
        )

    @property
    def saves_on_end(self) -> bool:
        """Whether the scope persists automatically when it ends."""
        return self is not EventCreationPolicy.MANUAL


class ActionType(Enum):
    """Lifecycle points at which custom actions are dispatched.

    Attributes:
        ON_SCOPE_CREATED: Once per scope, before any start-of-scope insert
        ON_EVENT_SAVING: Immediately before each end-of-scope save
    """
    ON_SCOPE_CREATED = "on_scope_created"
    ON_EVENT_SAVING = "on_event_saving"


class ScopeState(Enum):
    """Scope lifecycle state. ACTIVE leaves exactly once."""
    ACTIVE = "active"
    SAVED = "saved"
    DISCARDED = "discarded"


# Type aliases for string-based configuration
EventCreationPolicyType = Literal[
    "insert_on_end",
    "insert_on_start_replace_on_end",
    "insert_on_start_insert_on_end",
    "manual",
]
ActionTypeType = Literal["on_scope_created", "on_event_saving"]


def resolve_policy(value: "EventCreationPolicy | str") -> EventCreationPolicy:
    """Coerce a policy given by name or value to EventCreationPolicy.

    Accepts the enum itself, its value ("insert_on_end") or its member
    name ("INSERT_ON_END").

    Raises:
        ValueError: If the value names no policy
    """
    if isinstance(value, EventCreationPolicy):
        return value
    if isinstance(value, str):
        normalized = value.strip()
        try:
            return EventCreationPolicy(normalized.lower())
        except ValueError:
            pass
        if normalized.upper() in EventCreationPolicy.__members__:
            return EventCreationPolicy[normalized.upper()]
    raise ValueError(f"Unknown event creation policy: {value!r}")
