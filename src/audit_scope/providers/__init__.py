"""Audit data providers.

Concrete storage backends live outside this package; it only ships the
contract and two adapters that hold no external resources.
"""

from .base import AuditDataProvider
from .dynamic import DynamicDataProvider
from .memory import InMemoryDataProvider

__all__ = [
    "AuditDataProvider",
    "DynamicDataProvider",
    "InMemoryDataProvider",
]
