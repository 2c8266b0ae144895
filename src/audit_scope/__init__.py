"""Scoped audit tracking with pluggable persistence.

This package wraps a unit of work in an AuditScope that captures the
before/after state of a target object, environment metadata, timing and
annotations, then hands the resulting AuditEvent to a data provider
according to a creation policy.

Basic Usage:
    >>> from audit_scope import AuditScope, InMemoryDataProvider, set_default_provider
    >>> set_default_provider(InMemoryDataProvider())
    >>> with AuditScope("Order:Update", lambda: order) as scope:
    ...     order.status = -1
    ...     scope.comment("cancelled")

Creation Policies:
    >>> from audit_scope import EventCreationPolicy, set_default_creation_policy
    >>> set_default_creation_policy(EventCreationPolicy.INSERT_ON_START_REPLACE_ON_END)

Custom Actions:
    >>> from audit_scope import ActionType, add_custom_action
    >>> add_custom_action(
    ...     ActionType.ON_SCOPE_CREATED,
    ...     lambda scope: scope.discard() if scope.event_type.startswith("Health:") else None,
    ... )

Configuration File:
    >>> from audit_scope import configure_from_yaml
    >>> configure_from_yaml("audit.yaml")
"""

__version__ = "0.1.0"

from audit_scope.types import (
    # Enums
    ActionType,
    EventCreationPolicy,
    ScopeState,
    # Data models
    AuditEvent,
    AuditEventEnvironment,
    AuditTarget,
    # Custom actions
    ActionHandler,
    CustomAction,
    # Exceptions
    ActionError,
    AuditScopeError,
    ConfigurationError,
    ProviderError,
    SerializationError,
)

# Core utilities
from audit_scope.core import EnvironmentInfoProvider, snapshot

# Providers
from audit_scope.providers import (
    AuditDataProvider,
    DynamicDataProvider,
    InMemoryDataProvider,
)

# Configuration
from audit_scope.config import (
    AuditConfiguration,
    add_custom_action,
    configure,
    configure_from_yaml,
    get_configuration,
    load_configuration,
    reset_configuration,
    set_audit_disabled,
    set_default_creation_policy,
    set_default_provider,
    set_environment_provider,
)

# Scope
from audit_scope.scope import AuditScope

__all__ = [
    # Version
    "__version__",
    # Enums
    "ActionType",
    "EventCreationPolicy",
    "ScopeState",
    # Data models
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
    # Core
    "EnvironmentInfoProvider",
    "snapshot",
    # Providers
    "AuditDataProvider",
    "DynamicDataProvider",
    "InMemoryDataProvider",
    # Configuration
    "AuditConfiguration",
    "add_custom_action",
    "configure",
    "configure_from_yaml",
    "get_configuration",
    "load_configuration",
    "reset_configuration",
    "set_audit_disabled",
    "set_default_creation_policy",
    "set_default_provider",
    "set_environment_provider",
    # Scope
    "AuditScope",
]
