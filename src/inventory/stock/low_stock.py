"""Low stock scan — raises one LowStockDetected per low item per pass.

There is no de-duplication across passes; consumers of the alert are
expected to be idempotent or to rate-limit.
"""

import structlog
from protean import handle
from protean.fields import Integer
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.projections.inventory_level import InventoryLevel
from inventory.stock.stock import InventoryItem

logger = structlog.get_logger(__name__)


@inventory.command(part_of="InventoryItem")
class CheckLowStock:
    """Scan every item. Without ``threshold`` each item's own threshold applies."""

    threshold = Integer(min_value=0)


def low_stock_levels(threshold=None):
    """InventoryLevel rows with available at or below the threshold."""
    levels = current_domain.repository_for(InventoryLevel)._dao.query.all().items
    return [
        level
        for level in levels
        if level.available <= (level.low_stock_threshold if threshold is None else threshold)
    ]


@inventory.command_handler(part_of=InventoryItem)
class LowStockHandler:
    @handle(CheckLowStock)
    def check_low_stock(self, command):
        repo = current_domain.repository_for(InventoryItem)
        alerts = []
        for level in low_stock_levels(command.threshold):
            item = repo.get(level.inventory_item_id)
            event = item.flag_low_stock(command.threshold)
            if event is None:
                continue
            repo.add(item)
            alerts.append(
                {
                    "product_id": event.product_id,
                    "sku": event.sku,
                    "current_stock": event.current_stock,
                    "threshold": event.threshold,
                }
            )

        logger.info("Low stock scan complete", low_items=len(alerts), threshold=command.threshold)
        return alerts
