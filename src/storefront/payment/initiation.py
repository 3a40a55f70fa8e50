"""Opening a payment at the processor: direct intents and hosted checkout sessions.

An order keeps at most one live intent. Asking again returns the intent
already open for the same amount instead of creating a second one; the
idempotency key sent to the processor carries the amount so a changed
total always produces a fresh intent.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import logger, storefront
from storefront.errors import InvalidStateTransition, Unauthorized
from storefront.identity import Actor
from storefront.order.order import AdjustmentSource, Order, OrderState
from storefront.payment.gateway import currency, get_processor
from storefront.payment.gateway.port import SessionLine
from storefront.payment.intent import IntentStatus, PaymentIntent

MINIMUM_CHARGE = 50

_PAYABLE_STATES = {OrderState.CART, OrderState.ADDRESS, OrderState.DELIVERY, OrderState.PAYMENT}


@storefront.command(part_of="PaymentIntent")
class CreatePaymentIntent:
    order_id = Identifier(required=True)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command(part_of="PaymentIntent")
class CreateCheckoutSession:
    order_id = Identifier(required=True)
    success_url = String(required=True, max_length=2048)
    cancel_url = String(required=True, max_length=2048)
    user_id = Identifier()
    session_token = String(max_length=255)
    admin_id = Identifier()


@storefront.command_handler(part_of=PaymentIntent)
class PaymentInitiationHandler:
    @handle(CreatePaymentIntent)
    def create_payment_intent(self, command):
        order = _payable_order(command)

        existing = next(
            (intent for intent in intents_for(order.id) if intent.is_live and not intent.is_session),
            None,
        )
        if existing is not None and existing.amount == order.total:
            logger.info("Reusing payment intent", order_id=str(order.id), reference=existing.reference)
            return _intent_payload(existing)

        if order.total <= 0:
            raise ValidationError({"total": ["Order total must be greater than zero"]})
        if order.total < MINIMUM_CHARGE:
            raise ValidationError({"total": [f"Order total must be at least {MINIMUM_CHARGE} cents"]})

        handle_ = get_processor().create_intent(
            amount=order.total,
            currency=currency(),
            metadata={"order_id": str(order.id), "order_number": order.number},
            idempotency_key=f"order_{order.id}_amount_{order.total}",
        )

        repo = current_domain.repository_for(PaymentIntent)
        if existing is not None:
            existing.mark(IntentStatus.CANCELED)
            repo.add(existing)
        intent = PaymentIntent.open(
            order.id,
            handle_.reference,
            handle_.client_secret,
            order.total,
            IntentStatus.REQUIRES_PAYMENT_METHOD,
        )
        repo.add(intent)

        logger.info(
            "Payment intent created",
            order_id=str(order.id),
            reference=intent.reference,
            amount=intent.amount,
        )
        return _intent_payload(intent)

    @handle(CreateCheckoutSession)
    def create_checkout_session(self, command):
        order = _payable_order(command)

        existing = next((intent for intent in intents_for(order.id) if intent.is_session and intent.is_live), None)
        if existing is not None:
            return {"session_id": existing.reference, "url": existing.client_secret}

        if not order.line_items:
            raise ValidationError({"order": ["Order has no items"]})
        for line in order.line_items:
            if line.price <= 0 or line.price < MINIMUM_CHARGE:
                raise ValidationError(
                    {"line_items": [f"Item price for {line.product_name} must be at least {MINIMUM_CHARGE} cents"]}
                )
            if line.quantity <= 0:
                raise ValidationError({"line_items": [f"Invalid quantity for {line.product_name}"]})

        session = get_processor().create_session(
            lines=session_lines(order),
            currency=currency(),
            success_url=command.success_url,
            cancel_url=command.cancel_url,
            client_reference_id=order.number,
            customer_email=order.email,
            idempotency_key=f"checkout_{order.number}",
        )

        intent = PaymentIntent.open(order.id, session.reference, session.url, 0, IntentStatus.CHECKOUT_SESSION)
        current_domain.repository_for(PaymentIntent).add(intent)

        order.mark_awaiting_payment()
        current_domain.repository_for(Order).add(order)

        logger.info("Checkout session created", order_id=str(order.id), reference=session.reference)
        return {"session_id": session.reference, "url": session.url}


def create_payment_intent(order_id, actor: Actor) -> dict:
    return current_domain.process(
        CreatePaymentIntent(order_id=str(order_id), **actor.as_command_fields()),
        asynchronous=False,
    )


def create_checkout_session(order_id, actor: Actor, success_url: str, cancel_url: str) -> dict:
    return current_domain.process(
        CreateCheckoutSession(
            order_id=str(order_id),
            success_url=success_url,
            cancel_url=cancel_url,
            **actor.as_command_fields(),
        ),
        asynchronous=False,
    )


def session_lines(order: Order) -> list[SessionLine]:
    """Hosted checkout lines whose sum is the order total.

    Items are listed one per line, followed by shipping and any tax charged
    on top of the price. Hosted checkout has no negative lines, so a
    discounted order is charged as a single line for its total instead.
    """
    if order.promo_total:
        return [SessionLine(name=f"Order {order.number}", unit_amount=order.total, quantity=1)]

    lines = [
        SessionLine(name=line.product_name or line.sku or "Item", unit_amount=line.price, quantity=line.quantity)
        for line in order.line_items
    ]
    if order.shipment_total:
        lines.append(SessionLine(name="Shipping", unit_amount=order.shipment_total, quantity=1))
    additional_tax = sum(
        adjustment.amount
        for adjustment in order.adjustments
        if adjustment.source_type == AdjustmentSource.TAX_RATE.value and not adjustment.included
    )
    if additional_tax:
        lines.append(SessionLine(name="Tax", unit_amount=additional_tax, quantity=1))
    return lines


def intents_for(order_id) -> list[PaymentIntent]:
    return (
        current_domain.repository_for(PaymentIntent)
        ._dao.query.filter(order_id=str(order_id))
        .order_by("-created_at")
        .all()
        .items
    )


def intent_by_reference(reference: str) -> PaymentIntent | None:
    return current_domain.repository_for(PaymentIntent)._dao.query.filter(reference=reference).all().first


def _payable_order(command) -> Order:
    order = current_domain.repository_for(Order).get(command.order_id)
    if not order.is_owned_by(Actor.from_command(command)):
        raise Unauthorized("Not authorized to pay for this order", order_id=str(order.id))
    if order.current_state not in _PAYABLE_STATES:
        raise InvalidStateTransition(
            order.state,
            OrderState.PAYMENT.value,
            f"Order cannot be paid in state {order.state}",
        )
    return order


def _intent_payload(intent: PaymentIntent) -> dict:
    return {
        "payment_intent_id": intent.reference,
        "client_secret": intent.client_secret,
        "amount": intent.amount,
    }
