"""Stripe payment processor adapter.

Talks to the Stripe REST API directly over ``httpx``: form-encoded POSTs
with bearer auth and an ``Idempotency-Key`` header, GETs for status.
Any transport failure or non-200 answer surfaces as ExternalServiceError.
"""

import httpx

from storefront.domain import logger
from storefront.errors import ExternalServiceError
from storefront.payment.gateway.port import (
    IntentHandle,
    PaymentProcessor,
    RemoteStatus,
    SessionHandle,
    SessionLine,
    ensure_reference,
)

DEFAULT_API_BASE = "https://api.stripe.com"


class StripeProcessor(PaymentProcessor):
    """Production Stripe adapter."""

    def __init__(
        self,
        api_key: str,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.client = httpx.Client(
            base_url=api_base.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
    ) -> IntentHandle:
        data = {
            "amount": str(amount),
            "currency": currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = str(value)

        body = self._request("POST", "/v1/payment_intents", data=data, idempotency_key=idempotency_key)
        return IntentHandle(
            reference=body["id"],
            client_secret=body.get("client_secret") or "",
            status=body.get("status") or "requires_payment_method",
        )

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
        data = {
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": client_reference_id,
            "metadata[order_number]": client_reference_id,
        }
        if customer_email:
            data["customer_email"] = customer_email
        for index, line in enumerate(lines):
            prefix = f"line_items[{index}]"
            data[f"{prefix}[price_data][currency]"] = currency
            data[f"{prefix}[price_data][unit_amount]"] = str(line.unit_amount)
            data[f"{prefix}[price_data][product_data][name]"] = line.name
            data[f"{prefix}[quantity]"] = str(line.quantity)

        body = self._request("POST", "/v1/checkout/sessions", data=data, idempotency_key=idempotency_key)
        return SessionHandle(reference=body["id"], url=body.get("url") or "")

    def retrieve_intent(self, reference: str) -> RemoteStatus:
        body = self._request("GET", f"/v1/payment_intents/{ensure_reference(reference)}")
        return RemoteStatus(
            reference=body["id"],
            paid=body.get("status") == "succeeded",
            amount=int(body.get("amount") or 0),
            status=body.get("status") or "",
            metadata=body.get("metadata") or {},
        )

    def retrieve_session(self, reference: str) -> RemoteStatus:
        body = self._request("GET", f"/v1/checkout/sessions/{ensure_reference(reference)}")
        metadata = dict(body.get("metadata") or {})
        if body.get("client_reference_id"):
            metadata.setdefault("order_number", body["client_reference_id"])
        return RemoteStatus(
            reference=body["id"],
            paid=body.get("payment_status") == "paid",
            amount=int(body.get("amount_total") or 0),
            status=body.get("payment_status") or "",
            metadata=metadata,
        )

    def _request(self, method: str, path: str, data: dict | None = None, idempotency_key: str | None = None) -> dict:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        try:
            response = self.client.request(method, path, data=data, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Payment processor unreachable", method=method, path=path, error=str(exc))
            raise ExternalServiceError("Payment processor unreachable") from exc

        if response.status_code != 200:
            logger.error(
                "Payment processor rejected request",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise ExternalServiceError(
                "Payment processor request failed",
                status_code=response.status_code,
                body=response.text,
            )
        return response.json()
