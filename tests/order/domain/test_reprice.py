"""Domain tests for order totals, adjustments and completion."""

import pytest
from protean.exceptions import ValidationError
from storefront.errors import InvalidStateTransition
from storefront.order.address import Address
from storefront.order.events import OrderCompleted
from storefront.order.order import AdjustmentSource, Order, OrderState, PaymentState
from storefront.pricing.tax import TaxLine
from storefront.promotion.engine import PromotionAdjustment


def _order_with_lines():
    order = Order.create(number="R000000000001", guest_token="sess-001")
    order.add_line("var-001", 2, 1000, product_name="Widget")
    return order


def _in_delivery(order, cost=500):
    order.set_addresses(
        "ada@example.com",
        Address(firstname="Ada", lastname="Lovelace", address1="1 Row", city="Springfield", zipcode="62701"),
        Address(firstname="Ada", lastname="Lovelace", address1="1 Row", city="Springfield", zipcode="62701"),
    )
    order.select_shipping("ship-001", "Ground", cost, "H000000000001", "default")
    return order


class TestReprice:
    def test_item_total_only(self):
        order = _order_with_lines()
        order.reprice([], [])

        assert order.item_total == 2000
        assert order.item_count == 2
        assert order.adjustment_total == 0
        assert order.total == 2000

    def test_percent_off_promotion(self):
        order = _order_with_lines()
        order.reprice([PromotionAdjustment(promotion_id="promo-001", amount=-200, label="10% off")], [])

        assert order.promo_total == -200
        assert order.adjustment_total == -200
        assert order.total == 1800
        assert order.applied_promotion_ids == ["promo-001"]
        assert order.has_promotion_adjustment("promo-001")

    def test_tax_lines_become_line_item_adjustments(self):
        order = _order_with_lines()
        line = order.line_items[0]
        tax = TaxLine(rate_id="rate-001", line_item_id=str(line.id), amount=160, label="Tax", included=False)
        order.reprice([], [tax])

        assert order.tax_total == 160
        assert order.total == 2160
        adjustment = order.adjustments[0]
        assert adjustment.source_type == AdjustmentSource.TAX_RATE.value
        assert str(adjustment.target_id) == str(line.id)

    def test_reprice_replaces_previous_adjustments(self):
        order = _order_with_lines()
        order.reprice([PromotionAdjustment(promotion_id="promo-001", amount=-200, label="10% off")], [])
        order.reprice([], [])

        assert order.adjustments == []
        assert order.applied_promotion_ids == []
        assert order.total == 2000

    def test_reprice_is_idempotent(self):
        order = _order_with_lines()
        rewards = [PromotionAdjustment(promotion_id="promo-001", amount=-200, label="10% off")]
        order.reprice(rewards, [])
        first = (order.item_total, order.adjustment_total, order.total)
        order.reprice(rewards, [])

        assert (order.item_total, order.adjustment_total, order.total) == first
        assert len(order.adjustments) == 1

    def test_shipment_cost_counts_toward_total(self):
        order = _in_delivery(_order_with_lines(), cost=500)
        order.reprice([], [])

        assert order.shipment_total == 500
        assert order.total == 2500

    def test_total_cannot_be_set_inconsistently(self):
        order = _order_with_lines()
        order.reprice([], [])
        with pytest.raises(ValidationError):
            order.total = 1


class TestCheckoutSteps:
    def test_set_addresses_moves_to_address(self):
        order = _order_with_lines()
        _in_delivery(order)
        assert order.state == "delivery"
        assert order.shipment.number == "H000000000001"
        assert order.ship_address.city == "Springfield"

    def test_empty_cart_cannot_check_out(self):
        order = Order.create(number="R1", guest_token="sess-001")
        address = Address(firstname="A", lastname="B", address1="1", city="C", zipcode="1")
        with pytest.raises(ValidationError):
            order.set_addresses("a@example.com", address, address)

    def test_shipping_requires_address_state(self):
        order = _order_with_lines()
        with pytest.raises(InvalidStateTransition) as exc:
            order.select_shipping("ship-001", "Ground", 500, "H1", "default")
        assert exc.value.message == "No order in address state"

    def test_reselecting_shipping_keeps_one_shipment(self):
        order = _in_delivery(_order_with_lines(), cost=500)
        order.select_shipping("ship-002", "Express", 900, "H000000000002", "default")

        assert len(order.shipments) == 1
        assert order.shipment.cost == 900
        assert order.shipment.number == "H000000000001"


    def test_fresh_shipping_cost_replaces_the_chosen_one(self):
        order = _in_delivery(_order_with_lines(), cost=500)
        order.reprice([], [], shipping_cost=800)

        assert order.shipment.cost == 800
        assert order.shipment_total == 800
        assert order.total == 2800

    def test_no_shipping_cost_keeps_the_chosen_one(self):
        order = _in_delivery(_order_with_lines(), cost=500)
        order.reprice([], [])
        assert order.shipment_total == 500


class TestComplete:
    def test_complete_creates_inventory_units_and_marks_paid(self):
        order = _in_delivery(_order_with_lines())
        order.reprice([], [])
        order.complete()

        assert order.state == OrderState.COMPLETE.value
        assert order.payment_state == "paid"
        assert order.shipment_state == "ready"
        assert order.completed_at is not None
        assert len(order.inventory_units) == 2
        assert order.shipment.state == "ready"
        assert any(isinstance(e, OrderCompleted) for e in order._events)

    def test_refunded_order_stays_settled(self):
        order = _in_delivery(_order_with_lines())
        assert not order.is_settled
        order.reprice([], [])
        order.complete()

        order.set_payment_state(PaymentState.VOID)

        assert not order.is_paid
        assert order.is_settled

    def test_ship_marks_shipment_shipped(self):
        order = _in_delivery(_order_with_lines())
        order.reprice([], [])
        order.complete()
        order.ship(tracking="1Z999")

        assert order.shipment_state == "shipped"
        assert order.shipment.tracking == "1Z999"
        assert order.shipment.shipped_at is not None
