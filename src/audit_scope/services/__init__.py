"""Scope Service Classes.

Extracted services following Single Responsibility Principle:
- CustomActionManager: Custom action dispatch at scope lifecycle points
"""

from .actions import CustomActionManager

__all__ = [
    "CustomActionManager",
]
