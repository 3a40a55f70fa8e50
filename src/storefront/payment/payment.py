"""Payment records and their refunds.

A Payment row is written exactly once per settled order, by whichever
settlement path gets there first. Refunds hang off the payment; once the
refunded total reaches the captured amount the payment is void.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.payment.events import PaymentRecorded, RefundIssued


class PaymentRecordState(Enum):
    COMPLETED = "completed"
    VOID = "void"


class PaymentSource(Enum):
    CHECKOUT = "checkout"  # completed directly at the end of checkout
    PROCESSOR = "processor"  # settled through the external payment processor


@storefront.entity(part_of="Payment")
class Refund:
    amount = Integer(required=True, min_value=1)
    reason = String(max_length=255)
    created_at = DateTime()


@storefront.aggregate
class Payment:
    order_id = Identifier(required=True)
    amount = Integer(required=True, min_value=0)
    state = String(choices=PaymentRecordState, default=PaymentRecordState.COMPLETED.value)
    source = String(choices=PaymentSource, default=PaymentSource.CHECKOUT.value)
    reference = String(max_length=255)  # processor intent or session id
    refunds = HasMany(Refund)
    created_at = DateTime()

    @invariant.post
    def refunds_cannot_exceed_amount(self):
        if self.refunded_total > self.amount:
            raise ValidationError({"refunds": ["Refunds cannot exceed the payment amount"]})

    @classmethod
    def capture(cls, order_id, amount, source: PaymentSource, reference=None):
        payment = cls(
            order_id=str(order_id),
            amount=amount,
            state=PaymentRecordState.COMPLETED.value,
            source=source.value,
            reference=reference,
            created_at=datetime.now(UTC),
        )
        payment.raise_(
            PaymentRecorded(
                payment_id=str(payment.id),
                order_id=str(order_id),
                amount=amount,
                source=source.value,
                reference=reference,
            )
        )
        return payment

    @property
    def refunded_total(self) -> int:
        return sum(refund.amount for refund in self.refunds)

    @property
    def fully_refunded(self) -> bool:
        return self.refunded_total >= self.amount

    def refund(self, amount: int, reason: str | None = None) -> Refund:
        if amount > self.amount:
            raise ValidationError({"amount": ["Refund amount cannot exceed payment amount"]})
        if self.refunded_total + amount > self.amount:
            raise ValidationError({"amount": ["Refund amount exceeds the remaining refundable balance"]})

        refund = Refund(amount=amount, reason=reason, created_at=datetime.now(UTC))
        self.add_refunds(refund)
        if self.fully_refunded:
            self.state = PaymentRecordState.VOID.value

        self.raise_(
            RefundIssued(
                payment_id=str(self.id),
                order_id=str(self.order_id),
                refund_id=str(refund.id),
                amount=amount,
                refunded_total=self.refunded_total,
            )
        )
        return refund
