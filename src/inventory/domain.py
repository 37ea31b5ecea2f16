"""Inventory bounded context: the stock ledger and the reservation engine.

Each product's stock is an event-sourced InventoryItem. Reservations and
the append-only movement log live inside the item, so every change to
available/reserved/total is a single event on a single stream.
"""

import structlog
from protean.domain import Domain

inventory = Domain(name="inventory")

logger = structlog.get_logger(__name__)
