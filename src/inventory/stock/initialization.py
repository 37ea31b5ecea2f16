"""Stock registration — idempotent get-or-create by product."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain
from shared.settings import custom_setting

from inventory.domain import inventory
from inventory.projections.inventory_level import find_level_by_product
from inventory.stock.stock import InventoryItem


@inventory.command(part_of="InventoryItem")
class RegisterStock:
    """Create the stock ledger for a product unless one already exists."""

    product_id = Identifier(required=True)
    sku = String(required=True, max_length=50)
    initial_quantity = Integer(default=0)
    low_stock_threshold = Integer()


@inventory.command_handler(part_of=InventoryItem)
class RegisterStockHandler:
    @handle(RegisterStock)
    def register_stock(self, command):
        existing = find_level_by_product(command.product_id)
        if existing is not None:
            return str(existing.inventory_item_id)

        threshold = command.low_stock_threshold
        if threshold is None:
            threshold = custom_setting(current_domain, "LOW_STOCK_THRESHOLD")

        item = InventoryItem.register(
            product_id=command.product_id,
            sku=command.sku,
            initial_quantity=command.initial_quantity or 0,
            low_stock_threshold=threshold,
        )
        current_domain.repository_for(InventoryItem).add(item)
        return str(item.id)
