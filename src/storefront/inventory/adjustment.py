"""Stock adjustments: admin corrections and receipts routed through the ledger."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String

from storefront.domain import storefront
from storefront.identity import require_permission
from storefront.inventory.ledger import move_stock
from storefront.inventory.stock import DEFAULT_STOCK_LOCATION, MovementAction, StockItem


@storefront.command(part_of="StockItem")
class AdjustStock:
    """Signed correction of an on-hand count (stock take, shrinkage, ...)."""

    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    stock_location_id = Identifier(default=DEFAULT_STOCK_LOCATION)
    reason = String(max_length=255)
    admin_id = Identifier()


@storefront.command(part_of="StockItem")
class ReceiveStock:
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    stock_location_id = Identifier(default=DEFAULT_STOCK_LOCATION)
    admin_id = Identifier()


@storefront.command_handler(part_of=StockItem)
class StockAdjustmentHandler:
    @handle(AdjustStock)
    def adjust_stock(self, command):
        require_permission(command, "manage_stock")
        if command.quantity == 0:
            raise ValidationError({"quantity": ["Adjustment quantity cannot be zero"]})

        stock_item = move_stock(
            command.variant_id,
            command.quantity,
            MovementAction.ADJUSTMENT.value,
            stock_location_id=command.stock_location_id or DEFAULT_STOCK_LOCATION,
            originator_type="Admin",
            originator_id=command.admin_id,
        )
        return stock_item.count_on_hand

    @handle(ReceiveStock)
    def receive_stock(self, command):
        require_permission(command, "manage_stock")
        stock_item = move_stock(
            command.variant_id,
            command.quantity,
            MovementAction.RECEIVED.value,
            stock_location_id=command.stock_location_id or DEFAULT_STOCK_LOCATION,
            originator_type="Admin",
            originator_id=command.admin_id,
        )
        return stock_item.count_on_hand
