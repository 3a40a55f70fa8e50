"""Back-office order commands: forced state changes and fulfillment."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.identity import require_permission
from storefront.inventory.stock import DEFAULT_STOCK_LOCATION
from storefront.numbering import shipment_numbers
from storefront.order.order import Order, OrderState


@storefront.command(part_of="Order")
class UpdateOrderState:
    order_id = Identifier(required=True)
    state = String(required=True, max_length=20)
    admin_id = Identifier()


@storefront.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    tracking = String(max_length=255)
    admin_id = Identifier()


@storefront.command(part_of="Order")
class UpdateTracking:
    order_id = Identifier(required=True)
    tracking = String(required=True, max_length=255)
    admin_id = Identifier()


@storefront.command_handler(part_of=Order)
class OrderAdministrationHandler:
    @handle(UpdateOrderState)
    def update_order_state(self, command):
        require_permission(command, "manage_orders")
        try:
            target = OrderState(command.state)
        except ValueError as exc:
            raise ValidationError({"state": ["Invalid order state"]}) from exc

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.state
        order.transition_to(target)
        repo.add(order)

        logger.info(
            "Order state changed by admin",
            order_id=str(order.id),
            previous_state=previous,
            new_state=target.value,
            admin_id=str(command.admin_id),
        )
        return order.state

    @handle(ShipOrder)
    def ship_order(self, command):
        require_permission(command, "manage_orders")
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.current_state != OrderState.COMPLETE:
            raise ValidationError({"state": ["Only completed orders can be shipped"]})

        order.ship(tracking=command.tracking)
        repo.add(order)

        logger.info("Order shipped", order_id=str(order.id), tracking=command.tracking)
        return order.shipment.number

    @handle(UpdateTracking)
    def update_tracking(self, command):
        require_permission(command, "manage_orders")
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        order.update_tracking(
            command.tracking,
            shipment_number=None if order.shipment else shipment_numbers.next(),
            stock_location_id=DEFAULT_STOCK_LOCATION,
        )
        repo.add(order)
        return order.shipment.number
