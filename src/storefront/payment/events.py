"""Domain events for payments and payment intents."""

from protean.fields import Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Payment")
class PaymentRecorded:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Integer(required=True)
    source = String(required=True, max_length=20)
    reference = String(max_length=255)


@storefront.event(part_of="Payment")
class RefundIssued:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    amount = Integer(required=True)
    refunded_total = Integer(required=True)


@storefront.event(part_of="PaymentIntent")
class PaymentIntentStatusChanged:
    __version__ = 1

    intent_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reference = String(required=True, max_length=255)
    status = String(required=True, max_length=50)
