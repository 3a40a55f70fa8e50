"""Refunds against a recorded payment."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.identity import require_permission
from storefront.order.order import Order, PaymentState
from storefront.payment.payment import Payment


@storefront.command(part_of="Payment")
class CreateRefund:
    payment_id = Identifier(required=True)
    amount = Integer(required=True, min_value=1)
    reason = String(max_length=255)
    admin_id = Identifier()


@storefront.command_handler(part_of=Payment)
class RefundHandler:
    @handle(CreateRefund)
    def create_refund(self, command):
        require_permission(command, "manage_payments")
        repo = current_domain.repository_for(Payment)
        payment = repo.get(command.payment_id)
        refund = payment.refund(command.amount, reason=command.reason)
        repo.add(payment)

        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(payment.order_id)
        order.set_payment_state(PaymentState.VOID if payment.fully_refunded else PaymentState.CREDIT_OWED)
        order_repo.add(order)

        logger.info(
            "Refund issued",
            payment_id=str(payment.id),
            order_id=str(order.id),
            amount=command.amount,
            refunded_total=payment.refunded_total,
        )
        return str(refund.id)
