"""Cart mutation: add, update and remove line items.

A shopper has at most one order in the ``cart`` state. The first add
creates it; later adds merge into it. Stock is not decremented here. The
availability check counts what other open orders already hold, so two
shoppers cannot both put the last unit in their carts.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.catalog.variant import Variant
from storefront.domain import logger, storefront
from storefront.errors import InsufficientStock, Unauthorized
from storefront.identity import Actor
from storefront.inventory.ledger import on_hand
from storefront.numbering import order_numbers
from storefront.order.order import MAX_LINE_QUANTITY, Order, OrderState
from storefront.order.recalculation import recalculate


@storefront.command(part_of="Order")
class AddToCart:
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command(part_of="Order")
class UpdateLineItem:
    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    quantity = Integer(required=True)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command(part_of="Order")
class RemoveLineItem:
    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command_handler(part_of=Order)
class CartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        actor = Actor.from_command(command)
        if command.quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if command.quantity > MAX_LINE_QUANTITY:
            raise ValidationError({"quantity": [f"Maximum quantity per item is {MAX_LINE_QUANTITY}"]})
        if actor.is_anonymous and not actor.session_token:
            raise ValidationError({"session_token": ["Session ID required"]})

        variant = _purchasable_variant(command.variant_id)
        order = find_or_open_cart(actor)

        requested = order.quantity_of(variant.id) + command.quantity
        if requested > MAX_LINE_QUANTITY:
            raise ValidationError({"quantity": [f"Maximum quantity per item is {MAX_LINE_QUANTITY}"]})
        ensure_available(variant, requested)

        line = order.add_line(
            variant_id=variant.id,
            quantity=command.quantity,
            price=variant.price,
            currency=variant.currency,
            product_name=variant.product_name,
            sku=variant.sku,
        )
        recalculate(order)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Line item added",
            order_id=str(order.id),
            line_item_id=str(line.id),
            variant_id=str(variant.id),
            quantity=command.quantity,
        )
        return str(order.id)

    @handle(UpdateLineItem)
    def update_line_item(self, command):
        if command.quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})
        if command.quantity > MAX_LINE_QUANTITY:
            raise ValidationError({"quantity": [f"Maximum quantity per item is {MAX_LINE_QUANTITY}"]})
        return _change_line(command, command.quantity)

    @handle(RemoveLineItem)
    def remove_line_item(self, command):
        return _change_line(command, 0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _change_line(command, quantity: int) -> str:
    actor = Actor.from_command(command)
    repo = current_domain.repository_for(Order)
    order = repo.get(command.order_id)
    if not order.is_owned_by(actor):
        raise Unauthorized("Not authorized to modify this cart", order_id=str(order.id))

    line = order.find_line(command.line_item_id)
    if line is None:
        raise ValidationError({"line_item_id": ["Line item not found in order"]})

    if quantity > 0:
        variant = current_domain.repository_for(Variant).get(line.variant_id)
        ensure_available(variant, quantity)

    order.update_line(line.id, quantity)
    recalculate(order)
    repo.add(order)

    logger.info(
        "Line item updated" if quantity else "Line item removed",
        order_id=str(order.id),
        line_item_id=str(command.line_item_id),
        quantity=quantity,
    )
    return str(order.id)


def _purchasable_variant(variant_id) -> Variant:
    variant = current_domain.repository_for(Variant)._dao.query.filter(id=str(variant_id)).all().first
    if variant is None or not variant.purchasable:
        raise ValidationError({"variant_id": ["Variant not found or has no price"]})
    return variant


def ensure_available(variant: Variant, requested: int) -> None:
    available = on_hand(variant.id)
    if requested > available:
        raise InsufficientStock(
            f"Insufficient stock. Available: {max(available, 0)}",
            variant_id=str(variant.id),
            sku=variant.sku,
            product_name=variant.product_name,
            requested=requested,
            available=max(available, 0),
        )


def current_cart(actor: Actor) -> Order | None:
    """The caller's open cart, if any. Users also see the guest cart of their session."""
    query = current_domain.repository_for(Order)._dao.query
    cart_state = OrderState.CART.value

    if not actor.is_anonymous:
        cart = query.filter(user_id=str(actor.id), state=cart_state).all().first
        if cart is not None:
            return cart
    if actor.session_token:
        return query.filter(guest_token=actor.session_token, state=cart_state).all().first
    return None


def find_or_open_cart(actor: Actor) -> Order:
    cart = current_cart(actor)
    if cart is None:
        owner = None if actor.is_anonymous else str(actor.id)
        return Order.create(
            number=order_numbers.next(),
            user_id=owner,
            guest_token=actor.session_token if owner is None else None,
        )
    if not actor.is_anonymous and cart.guest_token:
        cart.claim(str(actor.id))
    return cart
