"""FastAPI routes for the storefront: cart, checkout, payments and back office.

The caller's identity comes from request headers (``X-User-Id``,
``X-Session-Token``, ``X-Admin-Id``) set by the authenticating proxy.
Routes that change an order or stock run through ``process_serialized``,
which holds ``stock_guard`` for the whole command, commit included.
"""

import json

from fastapi import APIRouter, Depends, Header, Request
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddItemRequest,
    AdjustStockRequest,
    ApplyCouponRequest,
    ChooseShippingRequest,
    CompleteCheckoutRequest,
    CreateIntentRequest,
    CreatePromotionRequest,
    CreateSessionRequest,
    CreateShippingMethodRequest,
    CreateTaxRateRequest,
    CreateZoneRequest,
    IdResponse,
    IntentResponse,
    OrderPageResponse,
    OrderResponse,
    PromotionActionRequest,
    PromotionRuleRequest,
    RefundRequest,
    RegisterVariantRequest,
    SessionResponse,
    SetAddressRequest,
    ShipOrderRequest,
    StockResponse,
    UpdateItemRequest,
    UpdateOrderStateRequest,
    UpdateTrackingRequest,
    VerifyPaymentRequest,
    WebhookResponse,
)
from storefront.catalog.registration import RegisterVariant
from storefront.errors import Unauthorized, WebhookSignatureError
from storefront.identity import Actor
from storefront.inventory.adjustment import AdjustStock
from storefront.inventory.ledger import process_serialized
from storefront.order.admin import ShipOrder, UpdateOrderState, UpdateTracking
from storefront.order.cart import AddToCart, RemoveLineItem, UpdateLineItem, current_cart
from storefront.order.checkout import ChooseShipping, CompleteCheckout, SetAddress
from storefront.order.coupons import ApplyCoupon
from storefront.order.order import Order
from storefront.order.queries import (
    EmailPredicate,
    OrderQuery,
    OrderSort,
    PaymentStatePredicate,
    ShipmentStatePredicate,
    StatePredicate,
    find_orders,
    order_by_number,
    orders_for,
)
from storefront.payment.gateway import webhook_secret
from storefront.payment.initiation import create_checkout_session, create_payment_intent
from storefront.payment.refund import CreateRefund
from storefront.payment.verification import verify_payment
from storefront.payment.webhook import handle_webhook_event, verify_signature
from storefront.pricing.management import CreateShippingMethod, CreateTaxRate, CreateZone
from storefront.promotion.management import AddPromotionAction, AddPromotionRule, CreatePromotion


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------
def get_actor(
    x_user_id: str | None = Header(default=None),
    x_session_token: str | None = Header(default=None),
    x_admin_id: str | None = Header(default=None),
) -> Actor:
    if x_admin_id:
        return Actor.admin(x_admin_id)
    if x_user_id:
        return Actor.user(x_user_id, session_token=x_session_token)
    return Actor.anonymous(x_session_token)


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise Unauthorized("Admin only")
    return actor


def order_response(order: Order) -> OrderResponse:
    def _address(address):
        return address.to_dict() if address is not None else None

    return OrderResponse(
        id=str(order.id),
        number=order.number,
        state=order.state,
        email=order.email,
        item_total=order.item_total,
        item_count=order.item_count,
        shipment_total=order.shipment_total,
        promo_total=order.promo_total,
        tax_total=order.tax_total,
        adjustment_total=order.adjustment_total,
        total=order.total,
        payment_state=order.payment_state,
        shipment_state=order.shipment_state,
        ship_address=_address(order.ship_address),
        bill_address=_address(order.bill_address),
        line_items=[
            {
                "id": str(line.id),
                "variant_id": str(line.variant_id),
                "product_name": line.product_name,
                "sku": line.sku,
                "quantity": line.quantity,
                "price": line.price,
                "total": line.total,
            }
            for line in order.line_items
        ],
        adjustments=[
            {
                "source_type": adjustment.source_type,
                "source_id": str(adjustment.source_id),
                "target_type": adjustment.target_type,
                "target_id": str(adjustment.target_id),
                "amount": adjustment.amount,
                "label": adjustment.label,
                "included": bool(adjustment.included),
            }
            for adjustment in order.adjustments
        ],
        shipments=[
            {
                "number": shipment.number,
                "state": shipment.state,
                "cost": shipment.cost or 0,
                "shipping_method_name": shipment.shipping_method_name,
                "tracking": shipment.tracking,
            }
            for shipment in order.shipments
        ],
        completed_at=order.completed_at,
    )


def _load(order_id) -> OrderResponse:
    return order_response(current_domain.repository_for(Order).get(order_id))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=OrderResponse)
async def get_cart(actor: Actor = Depends(get_actor)) -> OrderResponse:
    cart = current_cart(actor)
    if cart is None:
        raise ObjectNotFoundError("No active cart found")
    return order_response(cart)


@cart_router.post("/items", status_code=201, response_model=OrderResponse)
async def add_item(body: AddItemRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    command = AddToCart(variant_id=body.variant_id, quantity=body.quantity, **actor.as_command_fields())
    order_id = process_serialized(command)
    return _load(order_id)


@cart_router.patch("/items/{line_item_id}", response_model=OrderResponse)
async def update_item(line_item_id: str, body: UpdateItemRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    cart = _require_cart(actor)
    command = UpdateLineItem(
        order_id=str(cart.id),
        line_item_id=line_item_id,
        quantity=body.quantity,
        **actor.as_command_fields(),
    )
    order_id = process_serialized(command)
    return _load(order_id)


@cart_router.delete("/items/{line_item_id}", response_model=OrderResponse)
async def remove_item(line_item_id: str, actor: Actor = Depends(get_actor)) -> OrderResponse:
    cart = _require_cart(actor)
    command = RemoveLineItem(order_id=str(cart.id), line_item_id=line_item_id, **actor.as_command_fields())
    order_id = process_serialized(command)
    return _load(order_id)


@cart_router.post("/coupon", response_model=OrderResponse)
async def apply_coupon(body: ApplyCouponRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    command = ApplyCoupon(code=body.code, **actor.as_command_fields())
    order_id = process_serialized(command)
    return _load(order_id)


def _require_cart(actor: Actor) -> Order:
    cart = current_cart(actor)
    if cart is None:
        raise ObjectNotFoundError("No active cart found")
    return cart


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/address", response_model=OrderResponse)
async def set_address(body: SetAddressRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    command = SetAddress(
        order_id=body.order_id,
        email=body.email,
        shipping=json.dumps(body.ship_address),
        billing=json.dumps(body.bill_address) if body.bill_address is not None else None,
        use_shipping_for_billing=body.use_shipping_for_billing,
        **actor.as_command_fields(),
    )
    order_id = process_serialized(command)
    return _load(order_id)


@checkout_router.post("/shipping", response_model=OrderResponse)
async def choose_shipping(body: ChooseShippingRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    command = ChooseShipping(
        order_id=body.order_id,
        shipping_method_id=body.shipping_method_id,
        **actor.as_command_fields(),
    )
    order_id = process_serialized(command)
    return _load(order_id)


@checkout_router.post("/complete", response_model=OrderResponse)
async def complete_checkout(body: CompleteCheckoutRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    command = CompleteCheckout(order_id=body.order_id, **actor.as_command_fields())
    order_id = process_serialized(command)
    return _load(order_id)


# ---------------------------------------------------------------------------
# Orders (shopper view)
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
async def list_my_orders(actor: Actor = Depends(get_actor)) -> list[OrderResponse]:
    return [order_response(order) for order in orders_for(actor)]


@order_router.get("/{number}", response_model=OrderResponse)
async def get_order(number: str, actor: Actor = Depends(get_actor)) -> OrderResponse:
    return order_response(order_by_number(number, actor))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/intents", status_code=201, response_model=IntentResponse)
async def create_intent(body: CreateIntentRequest, actor: Actor = Depends(get_actor)) -> IntentResponse:
    return IntentResponse(**create_payment_intent(body.order_id, actor))


@payment_router.post("/sessions", status_code=201, response_model=SessionResponse)
async def create_session(body: CreateSessionRequest, actor: Actor = Depends(get_actor)) -> SessionResponse:
    return SessionResponse(**create_checkout_session(body.order_id, actor, body.success_url, body.cancel_url))


@payment_router.post("/verify", response_model=OrderResponse)
async def verify(body: VerifyPaymentRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    return order_response(verify_payment(body.order_id, body.payment_intent_id, actor))


@payment_router.post("/webhook", response_model=WebhookResponse)
async def webhook(request: Request, stripe_signature: str | None = Header(default=None)) -> WebhookResponse:
    secret = webhook_secret()
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    payload = await request.body()
    event = verify_signature(payload, stripe_signature, secret)
    return WebhookResponse(result=handle_webhook_event(event))


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.get("/orders", response_model=OrderPageResponse)
async def list_orders(
    state: str | None = None,
    payment_state: str | None = None,
    shipment_state: str | None = None,
    email: str | None = None,
    page: int = 1,
    per_page: int = 25,
    sort: OrderSort = OrderSort.NEWEST,
) -> OrderPageResponse:
    predicates = []
    if state:
        predicates.append(StatePredicate(tuple(state.split(","))))
    if payment_state:
        predicates.append(PaymentStatePredicate(payment_state))
    if shipment_state:
        predicates.append(ShipmentStatePredicate(shipment_state))
    if email:
        predicates.append(EmailPredicate(email))

    result = find_orders(OrderQuery(predicates=tuple(predicates), page=page, per_page=per_page, sort=sort))
    return OrderPageResponse(
        orders=[order_response(order) for order in result.orders],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        pages=result.pages,
    )


@admin_router.put("/orders/{order_id}/state", response_model=OrderResponse)
async def update_order_state(
    order_id: str, body: UpdateOrderStateRequest, actor: Actor = Depends(get_actor)
) -> OrderResponse:
    process_serialized(UpdateOrderState(order_id=order_id, state=body.state, admin_id=actor.id))
    return _load(order_id)


@admin_router.post("/orders/{order_id}/ship", response_model=OrderResponse)
async def ship_order(order_id: str, body: ShipOrderRequest, actor: Actor = Depends(get_actor)) -> OrderResponse:
    process_serialized(ShipOrder(order_id=order_id, tracking=body.tracking, admin_id=actor.id))
    return _load(order_id)


@admin_router.put("/orders/{order_id}/tracking", response_model=OrderResponse)
async def update_tracking(
    order_id: str, body: UpdateTrackingRequest, actor: Actor = Depends(get_actor)
) -> OrderResponse:
    process_serialized(UpdateTracking(order_id=order_id, tracking=body.tracking, admin_id=actor.id))
    return _load(order_id)


@admin_router.post("/refunds", status_code=201, response_model=IdResponse)
async def create_refund(body: RefundRequest, actor: Actor = Depends(get_actor)) -> IdResponse:
    refund_id = process_serialized(
        CreateRefund(payment_id=body.payment_id, amount=body.amount, reason=body.reason, admin_id=actor.id)
    )
    return IdResponse(id=refund_id)


@admin_router.post("/stock", response_model=StockResponse)
async def adjust_stock(body: AdjustStockRequest, actor: Actor = Depends(get_actor)) -> StockResponse:
    command = AdjustStock(
        variant_id=body.variant_id,
        quantity=body.quantity,
        reason=body.reason,
        admin_id=actor.id,
        **({"stock_location_id": body.stock_location_id} if body.stock_location_id else {}),
    )
    count_on_hand = process_serialized(command)
    return StockResponse(variant_id=body.variant_id, count_on_hand=count_on_hand)


@admin_router.post("/variants", status_code=201, response_model=IdResponse)
async def register_variant(body: RegisterVariantRequest) -> IdResponse:
    variant_id = current_domain.process(RegisterVariant(**body.model_dump()), asynchronous=False)
    return IdResponse(id=variant_id)


@admin_router.post("/promotions", status_code=201, response_model=IdResponse)
async def create_promotion(body: CreatePromotionRequest, actor: Actor = Depends(get_actor)) -> IdResponse:
    promotion_id = current_domain.process(
        CreatePromotion(**body.model_dump(exclude_none=True), admin_id=actor.id),
        asynchronous=False,
    )
    return IdResponse(id=promotion_id)


@admin_router.post("/promotions/{promotion_id}/rules", status_code=201, response_model=IdResponse)
async def add_promotion_rule(
    promotion_id: str, body: PromotionRuleRequest, actor: Actor = Depends(get_actor)
) -> IdResponse:
    rule_id = current_domain.process(
        AddPromotionRule(
            promotion_id=promotion_id,
            rule_type=body.rule_type,
            preferences=json.dumps(body.preferences),
            admin_id=actor.id,
        ),
        asynchronous=False,
    )
    return IdResponse(id=rule_id)


@admin_router.post("/promotions/{promotion_id}/actions", status_code=201, response_model=IdResponse)
async def add_promotion_action(
    promotion_id: str, body: PromotionActionRequest, actor: Actor = Depends(get_actor)
) -> IdResponse:
    action_id = current_domain.process(
        AddPromotionAction(
            promotion_id=promotion_id,
            action_type=body.action_type,
            calculator_type=body.calculator_type,
            preferences=json.dumps(body.preferences),
            admin_id=actor.id,
        ),
        asynchronous=False,
    )
    return IdResponse(id=action_id)


@admin_router.post("/zones", status_code=201, response_model=IdResponse)
async def create_zone(body: CreateZoneRequest, actor: Actor = Depends(get_actor)) -> IdResponse:
    zone_id = current_domain.process(
        CreateZone(
            name=body.name,
            description=body.description,
            members=json.dumps([member.model_dump() for member in body.members]),
            admin_id=actor.id,
        ),
        asynchronous=False,
    )
    return IdResponse(id=zone_id)


@admin_router.post("/tax-rates", status_code=201, response_model=IdResponse)
async def create_tax_rate(body: CreateTaxRateRequest, actor: Actor = Depends(get_actor)) -> IdResponse:
    rate_id = current_domain.process(
        CreateTaxRate(**body.model_dump(exclude_none=True), admin_id=actor.id),
        asynchronous=False,
    )
    return IdResponse(id=rate_id)


@admin_router.post("/shipping-methods", status_code=201, response_model=IdResponse)
async def create_shipping_method(body: CreateShippingMethodRequest, actor: Actor = Depends(get_actor)) -> IdResponse:
    method_id = current_domain.process(
        CreateShippingMethod(**body.model_dump(exclude_none=True), admin_id=actor.id),
        asynchronous=False,
    )
    return IdResponse(id=method_id)
