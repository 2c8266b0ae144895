"""Audit Scope - Event Data Models.

This module defines the record handed to data providers:

    AuditEvent
    ├── environment: AuditEventEnvironment
    ├── target: AuditTarget (old/new structural snapshots)
    ├── comments: list[str]
    └── custom_fields: dict (merged at the top level when serialized)

All models serialize to the canonical JSON-compatible form via to_dict()
and back via from_dict(). Keys in the serialized form are PascalCase.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


# Top-level keys owned by the event itself; custom fields may not use them
RESERVED_EVENT_KEYS = frozenset({
    "EventType",
    "Environment",
    "StartDate",
    "EndDate",
    "Duration",
    "Target",
    "Comments",
})


def _parse_date(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class AuditEventEnvironment:
    """Environment metadata gathered once when a scope is created.

    Attributes:
        user_name: Login name of the process owner
        machine_name: Host name
        domain_name: DNS domain (or Windows user domain) of the host
        calling_method_name: Qualified name of the code that opened the scope
        exception: "<Type>: <message>" if the scope exited with an exception
        culture: Locale name (e.g. "en_US")
    """
    user_name: Optional[str] = None
    machine_name: Optional[str] = None
    domain_name: Optional[str] = None
    calling_method_name: Optional[str] = None
    exception: Optional[str] = None
    culture: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "UserName": self.user_name,
            "MachineName": self.machine_name,
            "DomainName": self.domain_name,
            "CallingMethodName": self.calling_method_name,
            "Exception": self.exception,
            "Culture": self.culture,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AuditEventEnvironment:
        """Create from dictionary (JSON deserialization)."""
        return cls(
            user_name=data.get("UserName"),
            machine_name=data.get("MachineName"),
            domain_name=data.get("DomainName"),
            calling_method_name=data.get("CallingMethodName"),
            exception=data.get("Exception"),
            culture=data.get("Culture"),
        )


@dataclass
class AuditTarget:
    """Before/after state of the tracked object.

    Attributes:
        type: Type name of the tracked object
        old: Structural snapshot taken when the scope was created
        new: Structural snapshot taken when the scope ended (None until then)
    """
    type: str
    old: Any = None
    new: Any = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "Type": self.type,
            "Old": copy.deepcopy(self.old),
            "New": copy.deepcopy(self.new),
        }

    @classmethod
    def from_dict(cls, data: dict) -> AuditTarget:
        """Create from dictionary (JSON deserialization)."""
        return cls(
            type=data.get("Type", ""),
            old=data.get("Old"),
            new=data.get("New"),
        )


@dataclass
class AuditEvent:
    """A single audit record.

    The event is owned by exactly one AuditScope while it is active;
    data providers receive it by reference and must copy whatever they
    keep (to_dict() returns an independent copy).

    Attributes:
        event_type: Caller-supplied operation kind (e.g. "Order:Update")
        environment: Environment metadata
        start_date: Timezone-aware creation time
        end_date: Timezone-aware end time (None until the scope ends)
        target: Tracked object state (None for target-less scopes)
        comments: Free-text annotations, in insertion order
        custom_fields: Extra structural values; last write per key wins

    Example:
        >>> event = AuditEvent(event_type="Order:Update")
        >>> event.comments.append("status changed")
        >>> event.to_dict()["Comments"]
        ['status changed']
    """

    event_type: str
    environment: AuditEventEnvironment = field(default_factory=AuditEventEnvironment)
    start_date: datetime = field(default_factory=lambda: datetime.now().astimezone())
    end_date: Optional[datetime] = None
    target: Optional[AuditTarget] = None
    comments: list[str] = field(default_factory=list)
    custom_fields: dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> Optional[int]:
        """Elapsed milliseconds between start and end (None until ended)."""
        if self.end_date is None:
            return None
        elapsed = (self.end_date - self.start_date).total_seconds() * 1000
        return max(0, int(elapsed))

    def to_dict(self) -> dict:
        """Convert to the canonical JSON-compatible form.

        EndDate and Duration are omitted until the event has ended;
        Target is omitted for target-less events. Custom fields are
        merged at the top level.
        """
        result: dict[str, Any] = {
            "EventType": self.event_type,
            "Environment": self.environment.to_dict(),
            "StartDate": self.start_date.isoformat(),
        }
        if self.end_date is not None:
            result["EndDate"] = self.end_date.isoformat()
            result["Duration"] = self.duration
        if self.target is not None:
            result["Target"] = self.target.to_dict()
        result["Comments"] = list(self.comments)
        # Merge custom fields at top level
        for key, value in self.custom_fields.items():
            result[key] = copy.deepcopy(value)
        return result

    @classmethod
    def from_dict(cls, data: dict) -> AuditEvent:
        """Create from dictionary (JSON deserialization).

        Any top-level key that is not a canonical event key is treated
        as a custom field. Duration is recomputed from the dates.
        """
        custom_fields = {
            key: value for key, value in data.items()
            if key not in RESERVED_EVENT_KEYS
        }
        target = data.get("Target")
        start_date = _parse_date(data.get("StartDate"))

        event = cls(
            event_type=data["EventType"],
            environment=AuditEventEnvironment.from_dict(data.get("Environment") or {}),
            end_date=_parse_date(data.get("EndDate")),
            target=AuditTarget.from_dict(target) if target is not None else None,
            comments=list(data.get("Comments") or []),
            custom_fields=custom_fields,
        )
        if start_date is not None:
            event.start_date = start_date
        return event

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> AuditEvent:
        """Deserialize from a JSON string."""
        return cls.from_dict(json.loads(text))
