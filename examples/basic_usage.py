#!/usr/bin/env python
"""Basic Audit Scope Example.

This example demonstrates the fundamental patterns:
1. Configuring a default provider and creation policy
2. Tracking an object's before/after state with a scope
3. Annotating events with comments and custom fields
4. Discarding an event when the operation fails

Requirements:
    - audit-scope installed

Usage:
    python basic_usage.py
"""

import logging
from dataclasses import dataclass, field

from audit_scope import (
    AuditScope,
    EventCreationPolicy,
    InMemoryDataProvider,
    set_default_creation_policy,
    set_default_provider,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class Order:
    id: int
    status: int
    lines: list = field(default_factory=list)


def cancel_order(order: Order) -> None:
    with AuditScope("Order:Cancel", lambda: order, {"OrderId": order.id}) as scope:
        order.status = -1
        scope.comment("cancelled at customer request")


def ship_order(order: Order) -> None:
    with AuditScope("Order:Ship", lambda: order) as scope:
        try:
            if not order.lines:
                raise ValueError("nothing to ship")
            order.status = 3
        except ValueError:
            # Failed shipments are not audited
            scope.discard()


def main() -> None:
    provider = InMemoryDataProvider()
    set_default_provider(provider)
    set_default_creation_policy(EventCreationPolicy.INSERT_ON_END)

    order = Order(id=42, status=2)
    cancel_order(order)
    ship_order(order)

    for event in provider.get_all_events():
        logger.info(
            f"{event['EventType']}: {event['Target']['Old']['status']} -> "
            f"{event['Target']['New']['status']} ({event['Duration']} ms)"
        )


if __name__ == "__main__":
    main()
