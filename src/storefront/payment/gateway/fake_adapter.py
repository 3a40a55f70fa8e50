"""Configurable fake payment processor for development and testing.

Simulates the processor without any external calls. Created intents and
sessions are remembered so that later status lookups report the amount
and metadata they were opened with, unless a test overrides them.
"""

from uuid import uuid4

from storefront.errors import ExternalServiceError
from storefront.payment.gateway.port import (
    IntentHandle,
    PaymentProcessor,
    RemoteStatus,
    SessionHandle,
    SessionLine,
)


class FakeProcessor(PaymentProcessor):
    """Configurable fake payment processor."""

    def __init__(self) -> None:
        self.paid: bool = True
        self.reported_amount: int | None = None
        self.reported_metadata: dict | None = None
        self.unavailable: bool = False
        self.calls: list[dict] = []
        self._objects: dict[str, dict] = {}
        self._by_idempotency_key: dict[str, object] = {}

    def configure(
        self,
        paid: bool = True,
        reported_amount: int | None = None,
        reported_metadata: dict | None = None,
        unavailable: bool = False,
    ) -> None:
        """Configure what subsequent status lookups report."""
        self.paid = paid
        self.reported_amount = reported_amount
        self.reported_metadata = reported_metadata
        self.unavailable = unavailable

    def reset(self) -> None:
        self.__init__()

    def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
    ) -> IntentHandle:
        self.calls.append(
            {
                "method": "create_intent",
                "amount": amount,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
            }
        )
        self._check_available()
        if idempotency_key in self._by_idempotency_key:
            return self._by_idempotency_key[idempotency_key]

        reference = f"pi_fake_{uuid4().hex[:16]}"
        self._objects[reference] = {"amount": amount, "metadata": dict(metadata)}
        handle = IntentHandle(reference=reference, client_secret=f"{reference}_secret_{uuid4().hex[:8]}")
        self._by_idempotency_key[idempotency_key] = handle
        return handle

    def create_session(
        self,
        lines: list[SessionLine],
        currency: str,
        success_url: str,
        cancel_url: str,
        client_reference_id: str,
        customer_email: str | None,
        idempotency_key: str,
    ) -> SessionHandle:
        self.calls.append(
            {
                "method": "create_session",
                "lines": list(lines),
                "currency": currency,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "client_reference_id": client_reference_id,
                "customer_email": customer_email,
                "idempotency_key": idempotency_key,
            }
        )
        self._check_available()
        if idempotency_key in self._by_idempotency_key:
            return self._by_idempotency_key[idempotency_key]

        reference = f"cs_fake_{uuid4().hex[:16]}"
        self._objects[reference] = {
            "amount": sum(line.unit_amount * line.quantity for line in lines),
            "metadata": {"order_number": client_reference_id},
        }
        handle = SessionHandle(reference=reference, url=f"https://checkout.fake.test/pay/{reference}")
        self._by_idempotency_key[idempotency_key] = handle
        return handle

    def retrieve_intent(self, reference: str) -> RemoteStatus:
        self.calls.append({"method": "retrieve_intent", "reference": reference})
        return self._status(reference, "succeeded" if self.paid else "requires_payment_method")

    def retrieve_session(self, reference: str) -> RemoteStatus:
        self.calls.append({"method": "retrieve_session", "reference": reference})
        return self._status(reference, "paid" if self.paid else "unpaid")

    def _status(self, reference: str, status: str) -> RemoteStatus:
        self._check_available()
        known = self._objects.get(reference, {"amount": 0, "metadata": {}})
        return RemoteStatus(
            reference=reference,
            paid=self.paid,
            amount=self.reported_amount if self.reported_amount is not None else known["amount"],
            status=status,
            metadata=self.reported_metadata if self.reported_metadata is not None else known["metadata"],
        )

    def _check_available(self) -> None:
        if self.unavailable:
            raise ExternalServiceError("Payment processor unavailable", status_code=503)
