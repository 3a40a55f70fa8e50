"""Processor webhooks: signature verification and event dispatch.

Verification is delegated to ``stripe.Webhook.construct_event``: the
``Stripe-Signature`` header carries a timestamp and an HMAC-SHA256 of
``"<t>.<raw body>"`` under the endpoint secret. Signatures older than five
minutes are rejected so a captured request cannot be replayed later.
"""

import json

import stripe
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.domain import logger
from storefront.errors import WebhookSignatureError
from storefront.inventory.ledger import stock_guard
from storefront.order.order import Order
from storefront.payment.initiation import intent_by_reference
from storefront.payment.settlement import MarkIntentFailed, settle

TOLERANCE_SECONDS = 300


def verify_signature(payload: bytes | str, header: str | None, secret: str) -> dict:
    """Authenticate a webhook body and return it parsed."""
    if not header:
        raise WebhookSignatureError("Missing signature header")
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise WebhookSignatureError("Webhook payload is not valid UTF-8") from exc

    try:
        stripe.Webhook.construct_event(payload, header, secret, tolerance=TOLERANCE_SECONDS)
    except stripe.SignatureVerificationError as exc:
        logger.warning("Webhook signature rejected", reason=str(exc))
        raise WebhookSignatureError("Invalid signature", reason=str(exc)) from exc
    except ValueError as exc:
        raise WebhookSignatureError("Webhook payload is not valid JSON") from exc

    return json.loads(payload)


def handle_webhook_event(event: dict) -> str:
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    logger.info("Webhook received", event_type=event_type, event_id=event.get("id"), reference=obj.get("id"))

    if event_type == "payment_intent.succeeded":
        return _intent_succeeded(obj)
    if event_type == "checkout.session.completed":
        return _session_completed(obj)
    if event_type == "payment_intent.payment_failed":
        return current_domain.process(MarkIntentFailed(reference=_object_id(obj)), asynchronous=False)
    return "ignored"


def _object_id(obj: dict) -> str:
    reference = obj.get("id")
    if not reference:
        raise ValidationError({"id": ["Webhook object has no id"]})
    return reference


def _intent_succeeded(obj: dict) -> str:
    reference = _object_id(obj)
    order_id = (obj.get("metadata") or {}).get("order_id")
    if not order_id:
        intent = intent_by_reference(reference)
        order_id = str(intent.order_id) if intent else None
    if not order_id:
        logger.warning("Webhook intent matches no order", reference=reference)
        return "unmatched"

    with stock_guard:
        return settle(order_id, reference, int(obj.get("amount") or 0))


def _session_completed(obj: dict) -> str:
    if obj.get("payment_status") != "paid":
        return "ignored"

    reference = _object_id(obj)
    order = None
    number = obj.get("client_reference_id")
    if number:
        order = current_domain.repository_for(Order)._dao.query.filter(number=number).all().first
    if order is None:
        intent = intent_by_reference(reference)
        order = current_domain.repository_for(Order).get(intent.order_id) if intent else None
    if order is None:
        logger.warning("Webhook session matches no order", reference=reference)
        return "unmatched"

    with stock_guard:
        return settle(order.id, reference, int(obj.get("amount_total") or 0))
