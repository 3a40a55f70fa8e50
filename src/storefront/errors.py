"""Error taxonomy for the order lifecycle engine.

Input problems are reported with ``protean.exceptions.ValidationError`` and
missing records with ``protean.exceptions.ObjectNotFoundError``, exactly as
the rest of the domain does. The classes below cover the remaining failure
kinds. Each carries the HTTP status the API answers with and a ``context``
dict that is returned to the caller alongside the message.
"""

from typing import Any


class StorefrontError(Exception):
    """Base class for storefront failures that are not input validation."""

    status_code = 400

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.message, "detail": self.context}


class Unauthorized(StorefrontError):
    """The caller may not act on this order or resource."""

    status_code = 403


class WebhookSignatureError(Unauthorized):
    """A webhook payload failed authentication."""

    status_code = 401


class InsufficientStock(StorefrontError):
    """Requested quantity exceeds what is available for the variant."""

    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        variant_id: str,
        requested: int,
        available: int,
        sku: str | None = None,
        product_name: str | None = None,
    ) -> None:
        super().__init__(
            message,
            variant_id=variant_id,
            sku=sku,
            product_name=product_name,
            requested=requested,
            available=available,
        )
        self.variant_id = variant_id
        self.sku = sku
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidStateTransition(StorefrontError):
    """The checkout state machine does not allow the requested move."""

    status_code = 409

    def __init__(self, current: str, target: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Cannot transition from '{current}' to '{target}'",
            current=current,
            target=target,
        )
        self.current = current
        self.target = target


class UnsupportedConfiguration(StorefrontError):
    """A promotion rule, action or calculator kind is not recognised."""

    status_code = 422

    def __init__(self, message: str, *, kind: str) -> None:
        super().__init__(message, kind=kind)
        self.kind = kind


class ExternalServiceError(StorefrontError):
    """The payment processor was unreachable or answered with a failure."""

    status_code = 502

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message, upstream_status=status_code)
        self.upstream_status = status_code
        self.body = body


class IntegrityViolation(StorefrontError):
    """Processor-reported facts disagree with the order. Never auto-corrected."""

    status_code = 409
