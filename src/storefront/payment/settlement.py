"""Settling an order once the processor confirms the money arrived.

Every settlement path (client-side verification, the intent webhook and
the hosted checkout webhook) converges on ``SettleOrderPayment``. The
handler is idempotent: an order that has already completed is left untouched,
even after a refund moved its payment state away from paid. A duplicate
webhook or a verify racing a webhook records nothing twice.
"""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.errors import IntegrityViolation
from storefront.order.completion import finalize_order
from storefront.order.order import Order
from storefront.payment.initiation import intent_by_reference
from storefront.payment.intent import IntentStatus, PaymentIntent
from storefront.payment.payment import PaymentSource

# Processors may round differently by a minor unit
AMOUNT_TOLERANCE = 1


@storefront.command(part_of="PaymentIntent")
class SettleOrderPayment:
    order_id = Identifier(required=True)
    reference = String(required=True, max_length=255)
    amount = Integer(required=True, min_value=0)


@storefront.command(part_of="PaymentIntent")
class MarkIntentFailed:
    reference = String(required=True, max_length=255)


@storefront.command_handler(part_of=PaymentIntent)
class SettlementHandler:
    @handle(SettleOrderPayment)
    def settle_order_payment(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        if order.is_settled:
            logger.info("Order already paid", order_id=str(order.id), reference=command.reference)
            return "already_paid"

        ensure_amount_matches(order, command.amount)

        intent = intent_by_reference(command.reference)
        if intent is not None:
            intent.mark(IntentStatus.SUCCEEDED)
            current_domain.repository_for(PaymentIntent).add(intent)

        finalize_order(order, command.amount, PaymentSource.PROCESSOR, reference=command.reference)
        return "settled"

    @handle(MarkIntentFailed)
    def mark_intent_failed(self, command):
        intent = intent_by_reference(command.reference)
        if intent is None:
            logger.warning("Failed payment for unknown intent", reference=command.reference)
            return "unknown"

        intent.mark(IntentStatus.FAILED)
        current_domain.repository_for(PaymentIntent).add(intent)
        logger.info("Payment intent failed", order_id=str(intent.order_id), reference=command.reference)
        return "failed"


def ensure_amount_matches(order: Order, amount: int) -> None:
    if abs(amount - order.total) > AMOUNT_TOLERANCE:
        logger.error(
            "Payment amount mismatch",
            order_id=str(order.id),
            order_total=order.total,
            paid_amount=amount,
        )
        raise IntegrityViolation("Amount mismatch", order_id=str(order.id), expected=order.total, received=amount)


def settle(order_id, reference: str, amount: int) -> str:
    return current_domain.process(
        SettleOrderPayment(order_id=str(order_id), reference=reference, amount=amount),
        asynchronous=False,
    )
