"""Audit Scope - Exception Classes.

This module defines all exceptions raised by the audit scope library.
All exceptions inherit from AuditScopeError for easy catching.

Usage:
    try:
        with AuditScope("Order:Update", lambda: order) as scope:
            ...
    except AuditScopeError as e:
        print(f"Audit error: {e}")
"""

from __future__ import annotations

from typing import Any, Optional


class AuditScopeError(Exception):
    """Base exception for all audit scope errors.

    All exceptions in this library inherit from this class,
    making it easy to catch all audit-related errors.
    """
    pass


class ConfigurationError(AuditScopeError):
    """Raised when the configuration is missing or invalid.

    The most common cause is creating a scope while no data provider is
    configured and none was passed explicitly.
    """

    def __init__(self, message: str):
        super().__init__(f"Invalid audit configuration: {message}")


class SerializationError(AuditScopeError):
    """Raised when a value cannot be reduced to a structural snapshot."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot snapshot value at {path}: {reason}")


class ProviderError(AuditScopeError):
    """Raised when a data provider fails to insert or update an event.

    The underlying backend exception is kept in ``original`` and chained
    as ``__cause__``.
    """

    def __init__(self, operation: str, provider: str, original: Optional[BaseException] = None):
        self.operation = operation
        self.provider = provider
        self.original = original
        msg = f"Data provider {provider} failed on {operation}"
        if original is not None:
            msg += f": {type(original).__name__}: {original}"
        super().__init__(msg)


class ActionError(AuditScopeError):
    """Raised when a custom action handler fails."""

    def __init__(self, action_type: Any, handler: str, original: BaseException):
        self.action_type = action_type
        self.handler = handler
        self.original = original
        kind = getattr(action_type, "value", action_type)
        super().__init__(
            f"Custom action {handler} ({kind}) failed: "
            f"{type(original).__name__}: {original}"
        )
