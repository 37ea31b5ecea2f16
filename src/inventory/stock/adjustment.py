"""Stock adjustment — restocks and write-downs outside of reservations."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.domain import inventory
from inventory.projections.inventory_level import find_level_by_product
from inventory.stock.stock import InventoryItem


@inventory.command(part_of="InventoryItem")
class AdjustStock:
    """Add ``delta`` (may be negative) to a product's available and total stock."""

    product_id = Identifier(required=True)
    delta = Integer(required=True)
    reason = String(max_length=255)


@inventory.command_handler(part_of=InventoryItem)
class StockAdjustmentHandler:
    @handle(AdjustStock)
    def adjust_stock(self, command):
        level = find_level_by_product(command.product_id)
        if level is None:
            raise ObjectNotFoundError(f"No inventory registered for product {command.product_id}")

        repo = current_domain.repository_for(InventoryItem)
        item = repo.get(level.inventory_item_id)
        item.adjust_stock(delta=command.delta, reason=command.reason)
        repo.add(item)
        return str(item.id)
