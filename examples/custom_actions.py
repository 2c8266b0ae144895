#!/usr/bin/env python
"""Custom Actions and File Configuration Example.

This example demonstrates:
1. Loading defaults from a YAML file
2. Stamping every event with a correlation id on creation
3. Filtering out noisy events before they are saved
4. Manual saving for long-running batch work

Usage:
    python custom_actions.py
"""

import logging
import uuid
from pathlib import Path

from audit_scope import (
    ActionType,
    AuditScope,
    EventCreationPolicy,
    add_custom_action,
    configure_from_yaml,
    get_configuration,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent / "audit.yaml"


def stamp_correlation_id(scope: AuditScope) -> None:
    scope.set_custom_field("CorrelationId", str(uuid.uuid4()))


def drop_health_checks(scope: AuditScope) -> None:
    if scope.event_type.startswith("Health:"):
        scope.discard()


def import_batch(rows: list[dict]) -> None:
    batch = {"imported": 0}
    with AuditScope(
        "Batch:Import",
        lambda: batch,
        creation_policy=EventCreationPolicy.MANUAL,
    ) as scope:
        for row in rows:
            batch["imported"] += 1
            if batch["imported"] % 2 == 0:
                scope.save()  # checkpoint: insert first, update afterwards
        scope.save()


def main() -> None:
    configure_from_yaml(CONFIG_PATH)
    add_custom_action(ActionType.ON_SCOPE_CREATED, stamp_correlation_id)
    add_custom_action(ActionType.ON_SCOPE_CREATED, drop_health_checks)

    AuditScope.log("Health:Ping")
    import_batch([{"id": i} for i in range(5)])

    provider = get_configuration().data_provider
    for event in provider.get_all_events():
        logger.info(f"{event['EventType']} {event['CorrelationId']} {event['Target']['New']}")


if __name__ == "__main__":
    main()
