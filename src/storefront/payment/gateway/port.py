"""Payment processor port (abstract interface).

The domain talks to the external processor only through this contract,
so the fake adapter used in development and tests and the Stripe adapter
used in production are interchangeable.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from protean.exceptions import ValidationError

# Intent (pi_) and checkout session (cs_) ids as the processor issues them
REFERENCE_PATTERN = re.compile(r"(pi|cs)_[A-Za-z0-9_]+")


def ensure_reference(reference: str | None) -> str:
    if not reference or not REFERENCE_PATTERN.fullmatch(reference):
        raise ValidationError({"payment_intent_id": ["Invalid payment reference"]})
    return reference


@dataclass(frozen=True)
class IntentHandle:
    """A payment intent the client confirms with its secret."""

    reference: str
    client_secret: str
    status: str = "requires_payment_method"


@dataclass(frozen=True)
class SessionHandle:
    """A hosted checkout session the client is redirected to."""

    reference: str
    url: str


@dataclass(frozen=True)
class SessionLine:
    name: str
    unit_amount: int
    quantity: int


@dataclass(frozen=True)
class RemoteStatus:
    """What the processor reports for an intent or a session."""

    reference: str
    paid: bool
    amount: int
    status: str
    metadata: dict = field(default_factory=dict)


class PaymentProcessor(ABC):
    """Abstract payment processor interface."""

    @abstractmethod
    def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
    ) -> IntentHandle:
        """Open a payment intent for ``amount`` minor units."""
        ...

    @abstractmethod
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
        """Open a hosted checkout session for the given lines."""
        ...

    @abstractmethod
    def retrieve_intent(self, reference: str) -> RemoteStatus:
        ...

    @abstractmethod
    def retrieve_session(self, reference: str) -> RemoteStatus:
        ...
