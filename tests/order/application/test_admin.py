"""Application tests for back-office order commands."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from shop import ADMIN, add_to_cart, completed_order, guest, load_order, order_in_delivery, register_variant
from storefront.errors import InvalidStateTransition, Unauthorized
from storefront.inventory.ledger import on_hand
from storefront.order.admin import ShipOrder, UpdateOrderState, UpdateTracking


def _set_state(order_id, state, admin_id=ADMIN.id):
    return current_domain.process(
        UpdateOrderState(order_id=order_id, state=state, admin_id=admin_id),
        asynchronous=False,
    )


class TestUpdateOrderState:
    def test_admin_can_cancel_an_open_order(self):
        order_id, _ = order_in_delivery()
        assert _set_state(order_id, "canceled") == "canceled"
        assert load_order(order_id).state == "canceled"

    def test_complete_order_can_be_returned(self):
        order_id, _ = completed_order()
        _set_state(order_id, "returned")
        assert load_order(order_id).state == "returned"

    def test_canceled_order_can_be_marked_returned(self):
        order_id, _ = order_in_delivery()
        _set_state(order_id, "canceled")
        _set_state(order_id, "returned")
        assert load_order(order_id).state == "returned"

    def test_backwards_move_is_rejected(self):
        order_id, _ = completed_order()
        with pytest.raises(InvalidStateTransition):
            _set_state(order_id, "cart")
        assert load_order(order_id).state == "complete"

    def test_nothing_leaves_canceled(self):
        order_id, _ = order_in_delivery()
        _set_state(order_id, "canceled")
        with pytest.raises(InvalidStateTransition):
            _set_state(order_id, "complete")

    def test_unknown_state(self):
        order_id, _ = order_in_delivery()
        with pytest.raises(ValidationError) as exc:
            _set_state(order_id, "lost")
        assert exc.value.messages["state"] == ["Invalid order state"]

    def test_requires_admin(self):
        order_id, _ = order_in_delivery()
        with pytest.raises(Unauthorized):
            current_domain.process(
                UpdateOrderState(order_id=order_id, state="canceled", **guest().as_command_fields()),
                asynchronous=False,
            )
        assert load_order(order_id).state == "delivery"

    def test_canceling_a_cart_leaves_stock_alone(self):
        variant_id = register_variant(stock=1)
        order_id = add_to_cart(guest("sess-a"), variant_id, 1)
        _set_state(order_id, "canceled")

        assert on_hand(variant_id) == 1
        other = add_to_cart(guest("sess-b"), variant_id, 1)
        assert load_order(other).item_count == 1


class TestShipping:
    def test_ship_completed_order(self):
        order_id, _ = completed_order()
        number = current_domain.process(
            ShipOrder(order_id=order_id, tracking="1Z999", admin_id=ADMIN.id),
            asynchronous=False,
        )

        order = load_order(order_id)
        assert number == order.shipment.number
        assert order.shipment_state == "shipped"
        assert order.shipment.tracking == "1Z999"
        assert order.shipment.shipped_at is not None

    def test_cannot_ship_an_unpaid_order(self):
        order_id, _ = order_in_delivery()
        with pytest.raises(ValidationError):
            current_domain.process(ShipOrder(order_id=order_id, admin_id=ADMIN.id), asynchronous=False)

    def test_update_tracking_on_existing_shipment(self):
        order_id, _ = completed_order()
        before = load_order(order_id).shipment.number
        current_domain.process(
            UpdateTracking(order_id=order_id, tracking="TRK-2", admin_id=ADMIN.id),
            asynchronous=False,
        )
        order = load_order(order_id)
        assert order.shipment.number == before
        assert order.shipment.tracking == "TRK-2"

    def test_update_tracking_opens_a_shipment_when_missing(self):
        variant_id = register_variant(stock=5)
        order_id = add_to_cart(guest(), variant_id, 1)
        number = current_domain.process(
            UpdateTracking(order_id=order_id, tracking="TRK-1", admin_id=ADMIN.id),
            asynchronous=False,
        )
        order = load_order(order_id)
        assert number.startswith("H")
        assert len(order.shipments) == 1
        assert order.shipment.state == "pending"
