"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class LineItemAdded:
    """A variant was added to the cart, or its quantity was topped up."""

    __version__ = 1

    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.event(part_of="Order")
class LineItemUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Order")
class LineItemRemoved:
    __version__ = 1

    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    variant_id = Identifier(required=True)


@storefront.event(part_of="Order")
class AddressSet:
    """Shipping and billing addresses were recorded on the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    email = String(max_length=254)
    country_code = String(max_length=3)
    state_name = String(max_length=100)


@storefront.event(part_of="Order")
class ShippingChosen:
    __version__ = 1

    order_id = Identifier(required=True)
    shipment_number = String(required=True, max_length=32)
    shipping_method_id = Identifier(required=True)
    cost = Integer(required=True)


@storefront.event(part_of="Order")
class PromotionApplied:
    __version__ = 1

    order_id = Identifier(required=True)
    promotion_id = Identifier(required=True)
    code = String(max_length=100)


@storefront.event(part_of="Order")
class OrderStateChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_state = String(required=True, max_length=20)
    new_state = String(required=True, max_length=20)


@storefront.event(part_of="Order")
class OrderCompleted:
    """Checkout finished and the order is paid. Drives the confirmation message."""

    __version__ = 1

    order_id = Identifier(required=True)
    number = String(required=True, max_length=32)
    email = String(max_length=254)
    total = Integer(required=True)
    completed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    shipment_number = String(required=True, max_length=32)
    tracking = String(max_length=255)
    shipped_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaymentStateChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_state = String(required=True, max_length=20)
