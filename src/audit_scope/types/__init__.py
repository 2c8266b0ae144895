"""Audit Scope Types - Shared type definitions.

This package provides the enums, data models, custom action data and
exceptions shared by the scope engine, the configuration registry and
the data providers.

Package Structure:
    - config.py: Lifecycle enums (EventCreationPolicy, ActionType, ScopeState)
    - models.py: Event models (AuditEvent, AuditEventEnvironment, AuditTarget)
    - hooks.py: Custom action data (CustomAction, ActionHandler)
    - exceptions.py: Exception classes (AuditScopeError and subclasses)

Usage:
    >>> from audit_scope.types import EventCreationPolicy, AuditEvent
    >>> from audit_scope.types import AuditScopeError, ProviderError
"""

# Lifecycle enums
from .config import (
    ActionType,
    EventCreationPolicy,
    ScopeState,
    # Type aliases
    ActionTypeType,
    EventCreationPolicyType,
    resolve_policy,
)

# Data models
from .models import (
    RESERVED_EVENT_KEYS,
    AuditEvent,
    AuditEventEnvironment,
    AuditTarget,
)

# Custom action data
from .hooks import (
    ActionHandler,
    CustomAction,
)

# Exceptions
from .exceptions import (
    ActionError,
    AuditScopeError,
    ConfigurationError,
    ProviderError,
    SerializationError,
)

__all__ = [
    # Enums
    "ActionType",
    "EventCreationPolicy",
    "ScopeState",
    "ActionTypeType",
    "EventCreationPolicyType",
    "resolve_policy",
    # Models
    "RESERVED_EVENT_KEYS",
    "AuditEvent",
    "AuditEventEnvironment",
    "AuditTarget",
    # Custom actions
    "ActionHandler",
    "CustomAction",
    # Exceptions
    "ActionError",
    "AuditScopeError",
    "ConfigurationError",
    "ProviderError",
    "SerializationError",
]
