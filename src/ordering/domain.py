"""Ordering bounded context: orders and their lifecycle state machine.

Orders are event-sourced. Every status change is an OrderStatusChanged
event carrying the history entry it produces.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
