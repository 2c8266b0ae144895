"""Audit Scope Configuration.

This module defines the AuditConfiguration snapshot and the process-wide
registry that every new scope reads its defaults from.

Registry model:
    The registry holds one immutable AuditConfiguration. Every write builds
    a new snapshot under a lock and publishes it with a single reference
    swap; readers never lock and always see a complete snapshot. Callers
    are expected to configure once at startup, before creating scopes.

Usage:
    >>> from audit_scope import set_default_provider, add_custom_action
    >>> set_default_provider(InMemoryDataProvider())
    >>> set_default_creation_policy(EventCreationPolicy.INSERT_ON_START_REPLACE_ON_END)
    >>> add_custom_action(ActionType.ON_SCOPE_CREATED, lambda scope: scope.comment("started"))

Scopes may also receive a configuration explicitly, bypassing the registry:
    >>> config = AuditConfiguration(data_provider=InMemoryDataProvider())
    >>> with AuditScope("Order:Update", lambda: order, configuration=config):
    ...     ...
"""

from __future__ import annotations

import importlib
import logging
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

import yaml

from audit_scope.core.environment import EnvironmentInfoProvider
from audit_scope.types import (
    ActionHandler,
    ActionType,
    ConfigurationError,
    CustomAction,
    EventCreationPolicy,
    resolve_policy,
)

if TYPE_CHECKING:
    from audit_scope.providers.base import AuditDataProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditConfiguration:
    """Immutable set of defaults for new scopes.

    Attributes:
        data_provider: Provider used when a scope is given none
        creation_policy: Policy used when a scope is given none
        custom_actions: Registered custom actions, in registration order
        audit_disabled: When True, scopes make no provider calls at all
        environment_provider: Source of AuditEventEnvironment values

    Example:
        >>> config = AuditConfiguration().with_provider(InMemoryDataProvider())
        >>> config = config.with_creation_policy(EventCreationPolicy.MANUAL)
    """
    data_provider: Optional["AuditDataProvider"] = None
    creation_policy: EventCreationPolicy = EventCreationPolicy.INSERT_ON_END
    custom_actions: tuple[CustomAction, ...] = ()
    audit_disabled: bool = False
    environment_provider: EnvironmentInfoProvider = field(default_factory=EnvironmentInfoProvider)

    def with_provider(self, provider: Optional["AuditDataProvider"]) -> AuditConfiguration:
        """Return a new config with a different default provider."""
        return replace(self, data_provider=provider)

    def with_creation_policy(self, policy: Union[EventCreationPolicy, str]) -> AuditConfiguration:
        """Return a new config with a different default creation policy."""
        try:
            return replace(self, creation_policy=resolve_policy(policy))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def with_custom_action(self, action_type: ActionType, handler: ActionHandler) -> AuditConfiguration:
        """Return a new config with one more custom action appended."""
        action = CustomAction(action_type, handler)
        return replace(self, custom_actions=self.custom_actions + (action,))

    def with_audit_disabled(self, disabled: bool = True) -> AuditConfiguration:
        """Return a new config with auditing enabled/disabled."""
        return replace(self, audit_disabled=disabled)

    def with_environment_provider(self, provider: EnvironmentInfoProvider) -> AuditConfiguration:
        """Return a new config with a different environment source."""
        _check_environment_provider(provider)
        return replace(self, environment_provider=provider)

    def actions_for(self, action_type: ActionType) -> tuple[CustomAction, ...]:
        """Registered actions for one lifecycle point."""
        return tuple(a for a in self.custom_actions if a.action_type is action_type)


# =============================================================================
# Process-wide registry
# =============================================================================

_write_lock = threading.Lock()
_current = AuditConfiguration()


def get_configuration() -> AuditConfiguration:
    """Return the current configuration snapshot (lock-free read)."""
    return _current


def configure(config: AuditConfiguration) -> AuditConfiguration:
    """Replace the whole process-wide configuration.

    Returns:
        The previous snapshot
    """
    global _current
    if not isinstance(config, AuditConfiguration):
        raise TypeError(f"Expected AuditConfiguration, got {type(config).__name__}")
    with _write_lock:
        previous = _current
        _current = config
    return previous


def _update(**changes: Any) -> AuditConfiguration:
    global _current
    with _write_lock:
        _current = replace(_current, **changes)
        return _current


def set_default_provider(provider: Optional["AuditDataProvider"]) -> None:
    """Set the provider used by scopes that are not given one."""
    _update(data_provider=provider)


def set_default_creation_policy(policy: Union[EventCreationPolicy, str]) -> None:
    """Set the creation policy used by scopes that are not given one."""
    try:
        resolved = resolve_policy(policy)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    _update(creation_policy=resolved)


def add_custom_action(action_type: ActionType, handler: ActionHandler) -> CustomAction:
    """Append a custom action to the process-wide pipeline.

    Args:
        action_type: Lifecycle point at which the handler runs
        handler: Callable receiving the scope

    Returns:
        The registered CustomAction
    """
    global _current
    action = CustomAction(action_type, handler)
    with _write_lock:
        _current = replace(_current, custom_actions=_current.custom_actions + (action,))
    return action


def set_audit_disabled(disabled: bool = True) -> None:
    """Globally disable (or re-enable) all provider calls."""
    _update(audit_disabled=bool(disabled))


def set_environment_provider(provider: EnvironmentInfoProvider) -> None:
    """Set the environment source used by new scopes."""
    _check_environment_provider(provider)
    _update(environment_provider=provider)


def _check_environment_provider(provider: Any) -> None:
    if not isinstance(provider, EnvironmentInfoProvider):
        raise TypeError(f"Expected EnvironmentInfoProvider, got {type(provider).__name__}")


def reset_configuration() -> AuditConfiguration:
    """Restore the registry to its initial defaults.

    Returns:
        The previous snapshot
    """
    return configure(AuditConfiguration())


# =============================================================================
# YAML loading
# =============================================================================


def _import_object(path: str) -> Any:
    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError(f"Invalid import path: {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import {module_name!r}: {e}") from e
    obj: Any = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigurationError(f"{module_name!r} has no attribute {attr!r}") from e
    return obj


def _build_provider(spec: Any) -> "AuditDataProvider":
    from audit_scope.providers.base import AuditDataProvider

    if isinstance(spec, str):
        spec = {"class": spec}
    if not isinstance(spec, dict) or "class" not in spec:
        raise ConfigurationError("data_provider must be an import path or a mapping with 'class'")

    options = spec.get("options") or {}
    if not isinstance(options, dict):
        raise ConfigurationError("data_provider.options must be a mapping")

    factory = _import_object(spec["class"])
    try:
        provider = factory(**options)
    except Exception as e:
        raise ConfigurationError(f"Cannot create data provider {spec['class']!r}: {e}") from e
    if not isinstance(provider, AuditDataProvider):
        raise ConfigurationError(
            f"{spec['class']!r} did not produce an AuditDataProvider "
            f"(got {type(provider).__name__})"
        )
    return provider


def load_configuration(
    path: Union[str, Path],
    base: Optional[AuditConfiguration] = None,
) -> AuditConfiguration:
    """Build a configuration from a YAML file.

    Recognized keys: creation_policy, audit_disabled, data_provider
    (import path or {class, options}). Custom actions are code and are
    carried over from ``base`` unchanged.

    Args:
        path: YAML file path
        base: Snapshot to start from (defaults to a fresh AuditConfiguration)

    Returns:
        The new configuration (the registry is not modified)

    Raises:
        ConfigurationError: If the file is unreadable or invalid

    Example YAML:
        creation_policy: insert_on_start_replace_on_end
        audit_disabled: false
        data_provider:
          class: audit_scope.providers:InMemoryDataProvider
          options:
            max_events: 1000
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")

    unknown = set(data) - {"creation_policy", "audit_disabled", "data_provider"}
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    config = base if base is not None else AuditConfiguration()
    if "creation_policy" in data:
        config = config.with_creation_policy(data["creation_policy"])
    if "audit_disabled" in data:
        if not isinstance(data["audit_disabled"], bool):
            raise ConfigurationError("audit_disabled must be a boolean")
        config = config.with_audit_disabled(data["audit_disabled"])
    if data.get("data_provider") is not None:
        config = config.with_provider(_build_provider(data["data_provider"]))

    logger.info(f"Loaded audit configuration from {path}")
    return config


def configure_from_yaml(path: Union[str, Path]) -> AuditConfiguration:
    """Load a YAML file on top of the current registry and publish it."""
    config = load_configuration(path, base=get_configuration())
    configure(config)
    return config


__all__ = [
    "AuditConfiguration",
    "get_configuration",
    "configure",
    "set_default_provider",
    "set_default_creation_policy",
    "add_custom_action",
    "set_audit_disabled",
    "set_environment_provider",
    "reset_configuration",
    "load_configuration",
    "configure_from_yaml",
]
