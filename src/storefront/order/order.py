"""Order aggregate: the cart, the checkout state machine and the finished order.

An Order is created by the first cart mutation and moves forward through

    cart(0) → address(1) → delivery(2) → payment(3) → confirm(4) → complete(5)

with ``canceled`` and ``returned`` as side states. Monetary totals are
integer minor units and are only ever written by ``reprice``, which
replaces every adjustment and derives all totals in one atomic change.
Line edits never touch totals, so the totals invariant holds between an
edit and the recalculation that follows it in the same unit of work.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.errors import InvalidStateTransition
from storefront.identity import Actor
from storefront.order.address import Address
from storefront.order.events import (
    AddressSet,
    LineItemAdded,
    LineItemRemoved,
    LineItemUpdated,
    OrderCompleted,
    OrderPaymentStateChanged,
    OrderShipped,
    OrderStateChanged,
    PromotionApplied,
    ShippingChosen,
)

MAX_LINE_QUANTITY = 999


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderState(Enum):
    CART = "cart"
    ADDRESS = "address"
    DELIVERY = "delivery"
    PAYMENT = "payment"
    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCELED = "canceled"
    RETURNED = "returned"


class PaymentState(Enum):
    PAID = "paid"
    VOID = "void"
    CREDIT_OWED = "credit_owed"


class ShipmentState(Enum):
    PENDING = "pending"
    READY = "ready"
    SHIPPED = "shipped"


class AdjustmentSource(Enum):
    PROMOTION = "Promotion"
    TAX_RATE = "TaxRate"


class AdjustmentTarget(Enum):
    ORDER = "Order"
    LINE_ITEM = "LineItem"


# Side states rank above the forward chain so that nothing moves back out of them
_STATE_RANKS = {
    OrderState.CART: 0,
    OrderState.ADDRESS: 1,
    OrderState.DELIVERY: 2,
    OrderState.PAYMENT: 3,
    OrderState.CONFIRM: 4,
    OrderState.COMPLETE: 5,
    OrderState.CANCELED: 99,
    OrderState.RETURNED: 100,
}

# Line items may only change before a shipping rate is paid for
_EDITABLE_STATES = {OrderState.CART, OrderState.ADDRESS, OrderState.DELIVERY}


def can_transition(current: OrderState, target: OrderState) -> bool:
    if target == OrderState.CANCELED:
        return True
    if target == OrderState.RETURNED and current == OrderState.COMPLETE:
        return True
    return _STATE_RANKS[target] >= _STATE_RANKS[current]


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class LineItem:
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1, max_value=MAX_LINE_QUANTITY)
    price = Integer(required=True, min_value=0)  # unit price snapshot at add time
    currency = String(max_length=3, default="USD")
    product_name = String(max_length=255)
    sku = String(max_length=100)

    @property
    def total(self) -> int:
        return self.price * self.quantity


@storefront.entity(part_of="Order")
class Adjustment:
    """Signed delta attributed to a promotion or tax rate. Replaced, never edited."""

    source_type = String(required=True, choices=AdjustmentSource)
    source_id = Identifier(required=True)
    target_type = String(required=True, choices=AdjustmentTarget)
    target_id = Identifier(required=True)
    amount = Integer(required=True)
    label = String(max_length=255)
    included = Boolean(default=False)


@storefront.entity(part_of="Order")
class Shipment:
    number = String(required=True, max_length=32)
    stock_location_id = Identifier()
    state = String(choices=ShipmentState, default=ShipmentState.PENDING.value)
    cost = Integer(default=0)
    shipping_method_id = Identifier()
    shipping_method_name = String(max_length=100)
    tracking = String(max_length=255)
    shipped_at = DateTime()


@storefront.entity(part_of="Order")
class InventoryUnit:
    """One physical unit sold on this order."""

    variant_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    shipment_id = Identifier()
    state = String(max_length=20, default="on_hand")
    pending = Boolean(default=False)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    number = String(required=True, max_length=32)
    email = String(max_length=254)
    state = String(choices=OrderState, default=OrderState.CART.value)

    # Owner: exactly one of user_id / guest_token
    user_id = Identifier()
    guest_token = String(max_length=255)

    item_total = Integer(default=0)
    item_count = Integer(default=0)
    shipment_total = Integer(default=0)
    promo_total = Integer(default=0)
    tax_total = Integer(default=0)
    adjustment_total = Integer(default=0)
    total = Integer(default=0)

    payment_state = String(max_length=20)
    shipment_state = String(max_length=20)

    ship_address = ValueObject(Address)
    bill_address = ValueObject(Address)
    promotion_ids = Text()  # JSON array of promotion ids applied by coupon

    line_items = HasMany(LineItem)
    adjustments = HasMany(Adjustment)
    shipments = HasMany(Shipment)
    inventory_units = HasMany(InventoryUnit)

    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    @invariant.post
    def owner_must_be_a_user_or_a_guest(self):
        if self.user_id and self.guest_token:
            raise ValidationError({"owner": ["An order belongs to a user or a guest session, not both"]})

    @invariant.post
    def total_must_equal_its_parts(self):
        if self.total != self.item_total + self.shipment_total + self.adjustment_total:
            raise ValidationError({"total": ["Order total must equal item, shipment and adjustment totals"]})

    @invariant.post
    def adjustment_total_must_match_adjustments(self):
        if self.adjustment_total != sum(adjustment.amount for adjustment in self.adjustments):
            raise ValidationError({"adjustment_total": ["Adjustment total must equal the sum of adjustments"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, number, user_id=None, guest_token=None):
        now = datetime.now(UTC)
        return cls(
            number=number,
            user_id=user_id,
            guest_token=None if user_id else guest_token,
            state=OrderState.CART.value,
            promotion_ids=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------
    def is_owned_by(self, actor: Actor) -> bool:
        if actor.is_admin:
            return True
        if actor.is_anonymous:
            return bool(actor.session_token) and self.guest_token == actor.session_token
        if self.user_id and str(self.user_id) == str(actor.user_id):
            return True
        # A guest cart started before the shopper logged in
        return bool(actor.session_token) and self.guest_token == actor.session_token

    def claim(self, user_id) -> None:
        """Hand a guest cart over to the user who just logged in."""
        self.guest_token = None
        self.user_id = user_id
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    @property
    def current_state(self) -> OrderState:
        return OrderState(self.state)

    def transition_to(self, target: OrderState) -> None:
        current = self.current_state
        if not can_transition(current, target):
            raise InvalidStateTransition(current.value, target.value)
        if current == target:
            return

        self.state = target.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderStateChanged(
                order_id=str(self.id),
                previous_state=current.value,
                new_state=target.value,
            )
        )

    def _assert_in(self, states, target: OrderState, message: str | None = None) -> None:
        if self.current_state not in states:
            raise InvalidStateTransition(self.state, target.value, message)

    # -------------------------------------------------------------------
    # Line items
    # -------------------------------------------------------------------
    def find_line(self, line_item_id) -> LineItem | None:
        return next((line for line in self.line_items if str(line.id) == str(line_item_id)), None)

    def line_for_variant(self, variant_id) -> LineItem | None:
        return next((line for line in self.line_items if str(line.variant_id) == str(variant_id)), None)

    def quantity_of(self, variant_id) -> int:
        line = self.line_for_variant(variant_id)
        return line.quantity if line else 0

    def add_line(self, variant_id, quantity, price, currency="USD", product_name=None, sku=None) -> LineItem:
        """Add a variant, merging into the existing line when it is already in the cart."""
        if self.current_state != OrderState.CART:
            raise ValidationError({"order": ["Items can only be added to a cart"]})

        line = self.line_for_variant(variant_id)
        if line is not None:
            line.quantity = line.quantity + quantity
        else:
            line = LineItem(
                variant_id=str(variant_id),
                quantity=quantity,
                price=price,
                currency=currency,
                product_name=product_name,
                sku=sku,
            )
            self.add_line_items(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            LineItemAdded(
                order_id=str(self.id),
                line_item_id=str(line.id),
                variant_id=str(variant_id),
                quantity=quantity,
            )
        )
        return line

    def update_line(self, line_item_id, quantity: int) -> None:
        """Set a line's quantity. Zero removes the line."""
        if self.current_state not in _EDITABLE_STATES:
            raise ValidationError({"order": ["Order can no longer be modified"]})

        line = self.find_line(line_item_id)
        if line is None:
            raise ValidationError({"line_item_id": ["Line item not found in order"]})

        self.updated_at = datetime.now(UTC)
        if quantity == 0:
            self.remove_line_items(line)
            self.raise_(
                LineItemRemoved(
                    order_id=str(self.id),
                    line_item_id=str(line.id),
                    variant_id=str(line.variant_id),
                )
            )
            return

        previous_quantity = line.quantity
        line.quantity = quantity
        self.raise_(
            LineItemUpdated(
                order_id=str(self.id),
                line_item_id=str(line.id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    @property
    def line_total(self) -> int:
        return sum(line.total for line in self.line_items)

    # -------------------------------------------------------------------
    # Checkout steps
    # -------------------------------------------------------------------
    def set_addresses(self, email: str, ship_address: Address, bill_address: Address) -> None:
        self._assert_in({OrderState.CART, OrderState.ADDRESS}, OrderState.ADDRESS)
        if not self.line_items:
            raise ValidationError({"order": ["Cannot check out an empty cart"]})

        self.email = email
        self.ship_address = ship_address
        self.bill_address = bill_address
        self.transition_to(OrderState.ADDRESS)

        self.raise_(
            AddressSet(
                order_id=str(self.id),
                email=email,
                country_code=ship_address.country_code,
                state_name=ship_address.state_name,
            )
        )

    @property
    def shipment(self) -> Shipment | None:
        return self.shipments[0] if self.shipments else None

    def select_shipping(
        self, shipping_method_id, shipping_method_name, cost, shipment_number, stock_location_id
    ) -> None:
        """Attach the single shipping rate for this order's only shipment."""
        self._assert_in(
            {OrderState.ADDRESS, OrderState.DELIVERY},
            OrderState.DELIVERY,
            "No order in address state",
        )

        shipment = self.shipment
        if shipment is None:
            shipment = Shipment(
                number=shipment_number,
                stock_location_id=str(stock_location_id),
                state=ShipmentState.PENDING.value,
            )
            self.add_shipments(shipment)

        shipment.shipping_method_id = str(shipping_method_id)
        shipment.shipping_method_name = shipping_method_name
        shipment.cost = cost
        self.transition_to(OrderState.DELIVERY)

        self.raise_(
            ShippingChosen(
                order_id=str(self.id),
                shipment_number=shipment.number,
                shipping_method_id=str(shipping_method_id),
                cost=cost,
            )
        )

    # -------------------------------------------------------------------
    # Promotions
    # -------------------------------------------------------------------
    @property
    def applied_promotion_ids(self) -> list[str]:
        return json.loads(self.promotion_ids) if self.promotion_ids else []

    def has_promotion_adjustment(self, promotion_id) -> bool:
        return any(
            adjustment.source_type == AdjustmentSource.PROMOTION.value
            and str(adjustment.source_id) == str(promotion_id)
            for adjustment in self.adjustments
        )

    def record_promotion(self, promotion_id, code=None) -> None:
        ids = self.applied_promotion_ids
        if str(promotion_id) not in ids:
            ids.append(str(promotion_id))
        self.promotion_ids = json.dumps(ids)

        self.raise_(
            PromotionApplied(
                order_id=str(self.id),
                promotion_id=str(promotion_id),
                code=code,
            )
        )

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def reprice(self, promotion_adjustments, tax_lines, shipping_cost=None) -> None:
        """Replace every adjustment and re-derive all totals from scratch.

        Args:
            promotion_adjustments: ``PromotionAdjustment`` values, one per
                promotion action that produced a non-zero amount.
            tax_lines: ``TaxLine`` values for the current ship address.
            shipping_cost: Fresh price of the chosen shipping method, or
                None to keep the shipment cost as it is.
        """
        with atomic_change(self):
            if shipping_cost is not None and self.shipment is not None:
                self.shipment.cost = shipping_cost

            for adjustment in list(self.adjustments):
                self.remove_adjustments(adjustment)

            for reward in promotion_adjustments:
                self.add_adjustments(
                    Adjustment(
                        source_type=AdjustmentSource.PROMOTION.value,
                        source_id=reward.promotion_id,
                        target_type=AdjustmentTarget.ORDER.value,
                        target_id=str(self.id),
                        amount=reward.amount,
                        label=reward.label,
                    )
                )
            for tax in tax_lines:
                self.add_adjustments(
                    Adjustment(
                        source_type=AdjustmentSource.TAX_RATE.value,
                        source_id=tax.rate_id,
                        target_type=AdjustmentTarget.LINE_ITEM.value,
                        target_id=tax.line_item_id,
                        amount=tax.amount,
                        label=tax.label,
                        included=tax.included,
                    )
                )

            # Only promotions that still produce an adjustment stay applied
            self.promotion_ids = json.dumps(list(dict.fromkeys(r.promotion_id for r in promotion_adjustments)))

            self.item_total = self.line_total
            self.item_count = sum(line.quantity for line in self.line_items)
            self.shipment_total = sum(shipment.cost or 0 for shipment in self.shipments)
            self.promo_total = sum(r.amount for r in promotion_adjustments)
            self.tax_total = sum(t.amount for t in tax_lines)
            self.adjustment_total = sum(adjustment.amount for adjustment in self.adjustments)
            self.total = self.item_total + self.shipment_total + self.adjustment_total
            self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Completion
    # -------------------------------------------------------------------
    @property
    def is_paid(self) -> bool:
        return self.payment_state == PaymentState.PAID.value

    @property
    def is_settled(self) -> bool:
        """Checkout finished once. Refunds change the payment state but not this."""
        return self.completed_at is not None or self.is_paid

    def mark_awaiting_payment(self) -> None:
        self.transition_to(OrderState.PAYMENT)

    def complete(self) -> None:
        """Finalize a paid order: one inventory unit per purchased quantity, shipment ready."""
        now = datetime.now(UTC)
        with atomic_change(self):
            shipment = self.shipment
            for line in self.line_items:
                for _ in range(line.quantity):
                    self.add_inventory_units(
                        InventoryUnit(
                            variant_id=str(line.variant_id),
                            line_item_id=str(line.id),
                            shipment_id=str(shipment.id) if shipment else None,
                            state="on_hand",
                            pending=False,
                        )
                    )
            if shipment is not None:
                shipment.state = ShipmentState.READY.value

            self.transition_to(OrderState.COMPLETE)
            self.payment_state = PaymentState.PAID.value
            self.shipment_state = ShipmentState.READY.value
            self.completed_at = now
            self.updated_at = now

        self.raise_(
            OrderCompleted(
                order_id=str(self.id),
                number=self.number,
                email=self.email,
                total=self.total,
                completed_at=now,
            )
        )

    def set_payment_state(self, payment_state: PaymentState) -> None:
        self.payment_state = payment_state.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderPaymentStateChanged(
                order_id=str(self.id),
                payment_state=payment_state.value,
            )
        )

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def ship(self, tracking=None) -> None:
        shipment = self.shipment
        if shipment is None:
            raise ValidationError({"shipment": ["Order has no shipment"]})

        now = datetime.now(UTC)
        shipment.state = ShipmentState.SHIPPED.value
        shipment.tracking = tracking
        shipment.shipped_at = now
        self.shipment_state = ShipmentState.SHIPPED.value
        self.updated_at = now

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                shipment_number=shipment.number,
                tracking=tracking,
                shipped_at=now,
            )
        )

    def update_tracking(self, tracking, shipment_number=None, stock_location_id=None) -> None:
        """Record a tracking number, opening a pending shipment if none exists yet."""
        shipment = self.shipment
        if shipment is None:
            self.add_shipments(
                Shipment(
                    number=shipment_number,
                    stock_location_id=str(stock_location_id) if stock_location_id else None,
                    state=ShipmentState.PENDING.value,
                    tracking=tracking,
                )
            )
            self.shipment_state = self.shipment_state or ShipmentState.PENDING.value
        else:
            shipment.tracking = tracking
        self.updated_at = datetime.now(UTC)
