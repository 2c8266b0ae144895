"""Structural snapshots of arbitrary object graphs.

A snapshot is a deep, self-contained copy of a value made only of
dict (str keys), list, str, int, float, bool and None. It is independent
of the source object, so later in-place mutation of the source never
shows up in a snapshot taken earlier.

Reduction rules, in order:
    1. None, bool, int, float, str are returned as-is
    2. datetime/date/time -> ISO-8601 string; UUID, Decimal, Path -> str;
       bytes -> base64 text; Enum -> snapshot of its value
    3. Mappings -> dict with stringified keys
    4. Sequences and sets (list, tuple, deque, range, set, ...) -> list
    5. Dataclass instances -> dict of their fields
    6. Objects with a to_dict() method -> snapshot of its result
    7. Other objects -> dict of public instance attributes

Anything else (callables, modules, classes, iterators, reference cycles,
objects with no public state) raises SerializationError.
"""

from __future__ import annotations

import base64
import dataclasses
import inspect
import types
from collections.abc import Iterator, Mapping, Sequence
from collections.abc import Set as AbstractSet
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Any
from uuid import UUID

from audit_scope.types import SerializationError

_PRIMITIVES = (str, int, float, bool, type(None))
_KEY_TYPES = (str, int, float, bool, Enum)


def snapshot(obj: Any) -> Any:
    """Return a deep structural snapshot of ``obj``.

    Args:
        obj: Any object graph

    Returns:
        A JSON-compatible structure built from dict/list/primitives

    Raises:
        SerializationError: If some part of the graph cannot be represented

    Example:
        >>> @dataclass
        ... class Order:
        ...     id: int
        ...     status: int
        >>> snapshot(Order(id=1, status=2))
        {'id': 1, 'status': 2}
    """
    return _reduce(obj, "$", set())


def type_name(obj: Any) -> str:
    """Name used for AuditTarget.type."""
    cls = type(obj)
    if cls.__module__ in ("builtins", "__main__"):
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _reduce(obj: Any, path: str, active: set[int]) -> Any:
    if isinstance(obj, _PRIMITIVES):
        # Enum mixins (str, Enum) are handled below
        if not isinstance(obj, Enum):
            return obj

    if isinstance(obj, Enum):
        return _reduce(obj.value, path, active)
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal, PurePath)):
        return str(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(obj)).decode("ascii")

    if _is_opaque(obj):
        raise SerializationError(path, f"{type(obj).__name__} has no structural form")

    marker = id(obj)
    if marker in active:
        raise SerializationError(path, "reference cycle")
    active.add(marker)
    try:
        return _reduce_container(obj, path, active)
    finally:
        active.discard(marker)


def _reduce_container(obj: Any, path: str, active: set[int]) -> Any:
    if isinstance(obj, Mapping):
        result = {}
        for key, value in obj.items():
            result[_key(key, path)] = _reduce(value, f"{path}.{key}", active)
        return result

    if isinstance(obj, (list, tuple)):
        return [_reduce(item, f"{path}[{i}]", active) for i, item in enumerate(obj)]

    if isinstance(obj, AbstractSet):
        items = [_reduce(item, f"{path}[{i}]", active) for i, item in enumerate(obj)]
        try:
            return sorted(items)
        except TypeError:
            return items

    # deque, range and other sequence types
    if isinstance(obj, Sequence):
        return [_reduce(item, f"{path}[{i}]", active) for i, item in enumerate(obj)]

    if dataclasses.is_dataclass(obj):
        return {
            f.name: _reduce(getattr(obj, f.name), f"{path}.{f.name}", active)
            for f in dataclasses.fields(obj)
        }

    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        try:
            data = to_dict()
        except Exception as e:
            raise SerializationError(path, f"to_dict() failed: {e}") from e
        return _reduce(data, path, active)

    state = _public_state(obj)
    if state is None:
        raise SerializationError(path, f"{type(obj).__name__} exposes no public state")
    return {
        name: _reduce(value, f"{path}.{name}", active)
        for name, value in state.items()
    }


def _key(key: Any, path: str) -> str:
    if not isinstance(key, _KEY_TYPES):
        raise SerializationError(path, f"unsupported mapping key type {type(key).__name__}")
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, bool):
        return "true" if key else "false"
    return str(key)


def _is_opaque(obj: Any) -> bool:
    return (
        isinstance(obj, (type, types.ModuleType, Iterator))
        or inspect.isroutine(obj)
        or inspect.isgenerator(obj)
        or inspect.iscoroutine(obj)
    )


def _public_state(obj: Any) -> dict[str, Any] | None:
    state: dict[str, Any] = {}
    found = False

    for cls in type(obj).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            found = True
            if name.startswith("_") or not hasattr(obj, name):
                continue
            state[name] = getattr(obj, name)

    instance_dict = getattr(obj, "__dict__", None)
    if isinstance(instance_dict, dict):
        found = True
        for name, value in instance_dict.items():
            if not name.startswith("_"):
                state[name] = value

    return state if found else None
