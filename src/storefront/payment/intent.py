"""PaymentIntent aggregate: our handle on a payment at the external processor.

Either a direct payment intent (the client confirms it with a client
secret) or a hosted checkout session (the client is redirected to a URL).
At most one live intent per order is reused for as long as the amount it
was created for still matches the order total.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront
from storefront.payment.events import PaymentIntentStatusChanged


class IntentStatus(Enum):
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    CHECKOUT_SESSION = "checkout_session"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


# An intent in one of these states will never be paid again
TERMINAL_STATUSES = {IntentStatus.SUCCEEDED, IntentStatus.FAILED, IntentStatus.CANCELED}


@storefront.aggregate
class PaymentIntent:
    order_id = Identifier(required=True)
    reference = String(required=True, max_length=255)  # pi_... or cs_...
    client_secret = String(max_length=2048)  # client secret, or the hosted session URL
    amount = Integer(default=0)
    status = String(choices=IntentStatus, default=IntentStatus.REQUIRES_PAYMENT_METHOD.value)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, order_id, reference, client_secret, amount, status: IntentStatus):
        now = datetime.now(UTC)
        return cls(
            order_id=str(order_id),
            reference=reference,
            client_secret=client_secret,
            amount=amount,
            status=status.value,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_session(self) -> bool:
        return self.status == IntentStatus.CHECKOUT_SESSION.value or self.reference.startswith("cs_")

    @property
    def is_live(self) -> bool:
        return IntentStatus(self.status) not in TERMINAL_STATUSES

    def mark(self, status: IntentStatus) -> None:
        if self.status == status.value:
            return
        self.status = status.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentIntentStatusChanged(
                intent_id=str(self.id),
                order_id=str(self.order_id),
                reference=self.reference,
                status=status.value,
            )
        )
