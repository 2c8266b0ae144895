"""Core utilities: structural snapshots and environment capture."""

from audit_scope.core.environment import EnvironmentInfoProvider
from audit_scope.core.snapshot import snapshot, type_name

__all__ = [
    "EnvironmentInfoProvider",
    "snapshot",
    "type_name",
]
