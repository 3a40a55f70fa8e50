"""Checkout steps: address, shipping and completion."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalog.variant import Variant
from storefront.domain import logger, storefront
from storefront.errors import InsufficientStock, InvalidStateTransition, Unauthorized
from storefront.identity import Actor
from storefront.inventory.ledger import on_hand
from storefront.inventory.stock import DEFAULT_STOCK_LOCATION
from storefront.numbering import shipment_numbers
from storefront.order.address import build_address, validate_address, validate_email
from storefront.order.completion import finalize_order
from storefront.order.order import Order, OrderState
from storefront.order.recalculation import recalculate, shippable_lines
from storefront.payment.payment import PaymentSource
from storefront.pricing.shipping import ShippingMethod, get_shipping_calculator


@storefront.command(part_of="Order")
class SetAddress:
    order_id = Identifier(required=True)
    email = String(required=True, max_length=1000)  # length enforced with a friendlier message
    shipping = Text(required=True)  # JSON object
    billing = Text()  # JSON object
    use_shipping_for_billing = Boolean(default=True)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command(part_of="Order")
class ChooseShipping:
    order_id = Identifier(required=True)
    shipping_method_id = Identifier(required=True)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command(part_of="Order")
class CompleteCheckout:
    order_id = Identifier(required=True)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(SetAddress)
    def set_address(self, command):
        validate_email(command.email)
        shipping = json.loads(command.shipping)
        validate_address(shipping, "Shipping")
        billing = json.loads(command.billing) if command.billing else None
        if billing is not None:
            validate_address(billing, "Billing")

        repo = current_domain.repository_for(Order)
        order = _owned_order(repo, command)

        ship_address = build_address(shipping)
        use_shipping = command.use_shipping_for_billing is not False
        bill_address = ship_address if use_shipping or billing is None else build_address(billing)

        order.set_addresses(command.email, ship_address, bill_address)
        recalculate(order)
        repo.add(order)

        logger.info(
            "Address set",
            order_id=str(order.id),
            country_code=ship_address.country_code,
            tax_total=order.tax_total,
        )
        return str(order.id)

    @handle(ChooseShipping)
    def choose_shipping(self, command):
        repo = current_domain.repository_for(Order)
        order = _owned_order(repo, command)
        if order.current_state not in (OrderState.ADDRESS, OrderState.DELIVERY):
            raise InvalidStateTransition(order.state, OrderState.DELIVERY.value, "No order in address state")

        method = (
            current_domain.repository_for(ShippingMethod)
            ._dao.query.filter(id=str(command.shipping_method_id))
            .all()
            .first
        )
        if method is None or not method.available:
            raise ValidationError({"shipping_method_id": ["Shipping method is not available"]})

        cost = get_shipping_calculator().cost(method, shippable_lines(order))

        order.select_shipping(
            shipping_method_id=method.id,
            shipping_method_name=method.name,
            cost=cost,
            shipment_number=None if order.shipment else shipment_numbers.next(),
            stock_location_id=DEFAULT_STOCK_LOCATION,
        )
        recalculate(order)
        repo.add(order)

        logger.info(
            "Shipping chosen",
            order_id=str(order.id),
            shipping_method_id=str(method.id),
            cost=cost,
        )
        return str(order.id)

    @handle(CompleteCheckout)
    def complete_checkout(self, command):
        repo = current_domain.repository_for(Order)
        order = _owned_order(repo, command)
        if order.current_state != OrderState.DELIVERY:
            raise InvalidStateTransition(
                order.state,
                OrderState.COMPLETE.value,
                "Order must be in delivery state to complete checkout",
            )
        if not order.line_items:
            raise ValidationError({"order": ["Cannot complete an empty order"]})

        # Another order may have bought the stock since these lines were added
        variants = current_domain.repository_for(Variant)
        for line in order.line_items:
            available = on_hand(line.variant_id)
            if available < line.quantity:
                variant = variants.get(line.variant_id)
                raise InsufficientStock(
                    f"Insufficient stock for {variant.product_name} (SKU: {variant.sku}). "
                    f"Requested: {line.quantity}, Available: {max(available, 0)}",
                    variant_id=str(line.variant_id),
                    sku=variant.sku,
                    product_name=variant.product_name,
                    requested=line.quantity,
                    available=max(available, 0),
                )

        recalculate(order)
        finalize_order(order, order.total, PaymentSource.CHECKOUT)
        return str(order.id)


def _owned_order(repo, command) -> Order:
    order = repo.get(command.order_id)
    if not order.is_owned_by(Actor.from_command(command)):
        raise Unauthorized("Not authorized to access this order", order_id=str(order.id))
    return order
