"""Test configuration for audit-scope."""
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
from audit_scope import (
    AuditDataProvider,
    AuditEvent,
    EnvironmentInfoProvider,
    reset_configuration,
    set_default_provider,
    set_environment_provider,
)


class RecordingProvider(AuditDataProvider):
    """Provider that records every call with a copy of the event."""

    def __init__(self, fail_on: Optional[str] = None):
        self.calls: list[tuple[str, Any, dict]] = []
        self.fail_on = fail_on
        self._counter = 0

    def insert_event(self, event: AuditEvent) -> str:
        if self.fail_on == "insert":
            raise RuntimeError("backend unavailable")
        self._counter += 1
        event_id = f"evt-{self._counter}"
        self.calls.append(("insert", event_id, event.to_dict()))
        return event_id

    def update_event(self, event_id: Any, event: AuditEvent) -> None:
        if self.fail_on == "update":
            raise RuntimeError("backend unavailable")
        self.calls.append(("update", event_id, event.to_dict()))

    @property
    def inserts(self) -> list[tuple[str, Any, dict]]:
        return [c for c in self.calls if c[0] == "insert"]

    @property
    def updates(self) -> list[tuple[str, Any, dict]]:
        return [c for c in self.calls if c[0] == "update"]


class FixedEnvironment(EnvironmentInfoProvider):
    """Deterministic environment values for assertions."""

    def user_name(self):
        return "alice"

    def machine_name(self):
        return "build-01"

    def domain_name(self):
        return "example.org"

    def culture(self):
        return "en_US"


@dataclass
class Order:
    """Sample mutable target."""
    id: int
    status: int
    lines: list = field(default_factory=list)


@pytest.fixture(autouse=True)
def clean_registry():
    """Each test starts and ends with a pristine registry."""
    reset_configuration()
    set_environment_provider(FixedEnvironment())
    yield
    reset_configuration()


@pytest.fixture
def recorder():
    """Recording provider installed as the default provider."""
    provider = RecordingProvider()
    set_default_provider(provider)
    return provider


@pytest.fixture
def order():
    """Sample order target."""
    return Order(id=1, status=2)
