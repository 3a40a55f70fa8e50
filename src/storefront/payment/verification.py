"""Client-initiated payment verification.

After the client confirms a payment it asks us to check. The processor,
not the client, is the authority on whether and how much was paid.
"""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.domain import logger
from storefront.errors import IntegrityViolation, Unauthorized
from storefront.identity import Actor
from storefront.inventory.ledger import stock_guard
from storefront.order.order import Order
from storefront.payment.gateway import get_processor
from storefront.payment.gateway.port import ensure_reference
from storefront.payment.settlement import ensure_amount_matches, settle


def verify_payment(order_id, reference: str, actor: Actor) -> Order:
    repo = current_domain.repository_for(Order)
    order = repo.get(order_id)
    if not order.is_owned_by(actor):
        raise Unauthorized("Not authorized to verify this payment", order_id=str(order.id))
    ensure_reference(reference)
    if order.is_settled:
        return order

    processor = get_processor()
    if reference.startswith("cs_"):
        remote = processor.retrieve_session(reference)
    else:
        remote = processor.retrieve_intent(reference)

    if not remote.paid:
        raise ValidationError({"payment": ["Payment not completed"]})
    ensure_amount_matches(order, remote.amount)
    reported_number = remote.metadata.get("order_number")
    if reported_number and reported_number != order.number:
        logger.error(
            "Payment order number mismatch",
            order_id=str(order.id),
            number=order.number,
            reported_number=reported_number,
        )
        raise IntegrityViolation("Order number mismatch", number=order.number, reported=reported_number)

    with stock_guard:
        settle(order.id, reference, remote.amount)

    logger.info("Payment verified", order_id=str(order.id), reference=reference)
    return repo.get(order.id)
