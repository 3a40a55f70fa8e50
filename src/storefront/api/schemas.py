"""Pydantic request/response schemas for the storefront API.

These are external contracts, kept separate from the internal commands.
Money is always integer minor units (cents).
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    firstname: str
    lastname: str
    address1: str
    address2: str | None = None
    city: str
    state_name: str | None = None
    zipcode: str
    country_code: str = "US"
    phone: str | None = None


class LineItemSchema(BaseModel):
    id: str
    variant_id: str
    product_name: str | None = None
    sku: str | None = None
    quantity: int
    price: int
    total: int


class AdjustmentSchema(BaseModel):
    source_type: str
    source_id: str
    target_type: str
    target_id: str
    amount: int
    label: str | None = None
    included: bool = False


class ShipmentSchema(BaseModel):
    number: str
    state: str | None = None
    cost: int = 0
    shipping_method_name: str | None = None
    tracking: str | None = None


class OrderResponse(BaseModel):
    id: str
    number: str
    state: str
    email: str | None = None
    item_total: int
    item_count: int
    shipment_total: int
    promo_total: int
    tax_total: int
    adjustment_total: int
    total: int
    payment_state: str | None = None
    shipment_state: str | None = None
    ship_address: AddressSchema | None = None
    bill_address: AddressSchema | None = None
    line_items: list[LineItemSchema] = []
    adjustments: list[AdjustmentSchema] = []
    shipments: list[ShipmentSchema] = []
    completed_at: datetime | None = None


class OrderPageResponse(BaseModel):
    orders: list[OrderResponse]
    total: int
    page: int
    per_page: int
    pages: int


class IdResponse(BaseModel):
    id: str


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddItemRequest(BaseModel):
    variant_id: str
    quantity: int = 1


class UpdateItemRequest(BaseModel):
    quantity: int


class ApplyCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=100)


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class SetAddressRequest(BaseModel):
    order_id: str
    email: str
    ship_address: dict
    bill_address: dict | None = None
    use_shipping_for_billing: bool = True

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": "3f1c...",
                    "email": "shopper@example.com",
                    "ship_address": {
                        "firstname": "Ada",
                        "lastname": "Lovelace",
                        "address1": "12 Analytical Row",
                        "city": "Springfield",
                        "state_name": "IL",
                        "zipcode": "62701",
                        "country_code": "US",
                    },
                    "use_shipping_for_billing": True,
                }
            ]
        }
    }


class ChooseShippingRequest(BaseModel):
    order_id: str
    shipping_method_id: str


class CompleteCheckoutRequest(BaseModel):
    order_id: str


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CreateIntentRequest(BaseModel):
    order_id: str


class IntentResponse(BaseModel):
    payment_intent_id: str
    client_secret: str
    amount: int


class CreateSessionRequest(BaseModel):
    order_id: str
    success_url: str
    cancel_url: str


class SessionResponse(BaseModel):
    session_id: str
    url: str


class VerifyPaymentRequest(BaseModel):
    order_id: str
    payment_intent_id: str


class WebhookResponse(BaseModel):
    received: bool = True
    result: str


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
class UpdateOrderStateRequest(BaseModel):
    state: str


class ShipOrderRequest(BaseModel):
    tracking: str | None = None


class UpdateTrackingRequest(BaseModel):
    tracking: str


class RefundRequest(BaseModel):
    payment_id: str
    amount: int = Field(ge=1)
    reason: str | None = None


class AdjustStockRequest(BaseModel):
    variant_id: str
    quantity: int
    stock_location_id: str | None = None
    reason: str | None = None


class StockResponse(BaseModel):
    variant_id: str
    count_on_hand: int


class RegisterVariantRequest(BaseModel):
    product_name: str
    sku: str
    price: int | None = Field(default=None, ge=0)
    weight: float | None = None
    currency: str = "USD"


class CreatePromotionRequest(BaseModel):
    name: str
    code: str | None = None
    description: str | None = None
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=0)
    active: bool = True


class PromotionRuleRequest(BaseModel):
    rule_type: str
    preferences: dict = {}


class PromotionActionRequest(BaseModel):
    action_type: str = "CreateAdjustment"
    calculator_type: str
    preferences: dict = {}


class ZoneMemberSchema(BaseModel):
    zoneable_type: str
    zoneable_id: str


class CreateZoneRequest(BaseModel):
    name: str
    description: str | None = None
    members: list[ZoneMemberSchema] = []


class CreateTaxRateRequest(BaseModel):
    name: str | None = None
    amount: float = Field(ge=0)
    zone_id: str
    included_in_price: bool = False


class CreateShippingMethodRequest(BaseModel):
    name: str
    code: str | None = None
    carrier: str | None = None
    service_level: str | None = None
    tracking_url: str | None = None
    base_cost: int = Field(ge=0, default=0)
    active: bool = True
