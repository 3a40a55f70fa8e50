"""Application tests for cart mutation commands."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from shop import add_to_cart, guest, load_order, register_variant, shopper
from storefront.catalog.registration import UpdateVariant
from storefront.errors import InsufficientStock, Unauthorized
from storefront.order.cart import RemoveLineItem, UpdateLineItem, current_cart


def _update(order_id, line_item_id, quantity, actor):
    return current_domain.process(
        UpdateLineItem(order_id=order_id, line_item_id=line_item_id, quantity=quantity, **actor.as_command_fields()),
        asynchronous=False,
    )


class TestAddToCart:
    def test_first_add_opens_cart(self):
        variant_id = register_variant(price=1000, stock=10)
        order_id = add_to_cart(guest(), variant_id, 2)

        order = load_order(order_id)
        assert order.state == "cart"
        assert order.number.startswith("R")
        assert order.guest_token == "sess-001"
        assert order.item_total == 2000
        assert order.total == 2000

    def test_second_add_merges_into_same_cart(self):
        variant_id = register_variant(stock=10)
        first = add_to_cart(guest(), variant_id, 1)
        second = add_to_cart(guest(), variant_id, 2)

        assert first == second
        order = load_order(first)
        assert len(order.line_items) == 1
        assert order.line_items[0].quantity == 3

    def test_price_is_snapshotted(self):
        variant_id = register_variant(price=1000, stock=10)
        order_id = add_to_cart(guest(), variant_id, 1)
        current_domain.process(UpdateVariant(variant_id=variant_id, price=5000), asynchronous=False)

        assert load_order(order_id).line_items[0].price == 1000

    def test_anonymous_caller_needs_session(self):
        variant_id = register_variant(stock=10)
        with pytest.raises(ValidationError) as exc:
            add_to_cart(guest(token=None), variant_id, 1)
        assert exc.value.messages["session_token"] == ["Session ID required"]

    @pytest.mark.parametrize(
        "quantity,message",
        [(0, "Quantity must be positive"), (1000, "Maximum quantity per item is 999")],
    )
    def test_quantity_bounds(self, quantity, message):
        variant_id = register_variant(stock=2000)
        with pytest.raises(ValidationError) as exc:
            add_to_cart(guest(), variant_id, quantity)
        assert exc.value.messages["quantity"] == [message]

    def test_merged_quantity_is_bounded(self):
        variant_id = register_variant(stock=2000)
        add_to_cart(guest(), variant_id, 999)
        with pytest.raises(ValidationError):
            add_to_cart(guest(), variant_id, 1)

    def test_unpriced_variant_is_rejected(self):
        variant_id = register_variant(price=None, stock=10)
        with pytest.raises(ValidationError) as exc:
            add_to_cart(guest(), variant_id, 1)
        assert exc.value.messages["variant_id"] == ["Variant not found or has no price"]

    def test_more_than_available_is_rejected_without_writes(self):
        variant_id = register_variant(stock=2)
        with pytest.raises(InsufficientStock) as exc:
            add_to_cart(guest(), variant_id, 3)

        assert exc.value.message == "Insufficient stock. Available: 2"
        assert exc.value.available == 2
        assert current_cart(guest()) is None

    def test_other_carts_do_not_reduce_availability(self):
        variant_id = register_variant(stock=1)
        add_to_cart(guest("sess-a"), variant_id, 1)

        order_id = add_to_cart(shopper("user-b"), variant_id, 1)
        assert load_order(order_id).item_count == 1

    def test_quantity_already_in_the_cart_counts_towards_the_request(self):
        variant_id = register_variant(stock=3)
        add_to_cart(guest(), variant_id, 2)
        with pytest.raises(InsufficientStock) as exc:
            add_to_cart(guest(), variant_id, 2)
        assert exc.value.requested == 4
        assert exc.value.available == 3


class TestCartOwnership:
    def test_logged_in_user_claims_guest_cart(self):
        variant_id = register_variant(stock=10)
        order_id = add_to_cart(guest("sess-a"), variant_id, 1)
        claimed = add_to_cart(shopper("user-001", session_token="sess-a"), variant_id, 1)

        assert claimed == order_id
        order = load_order(order_id)
        assert str(order.user_id) == "user-001"
        assert order.guest_token is None

    def test_other_shopper_cannot_edit_cart(self):
        variant_id = register_variant(stock=10)
        order_id = add_to_cart(guest("sess-a"), variant_id, 1)
        line_id = str(load_order(order_id).line_items[0].id)

        with pytest.raises(Unauthorized) as exc:
            _update(order_id, line_id, 2, guest("sess-b"))
        assert exc.value.message == "Not authorized to modify this cart"


class TestUpdateAndRemove:
    def test_update_quantity_recalculates(self):
        variant_id = register_variant(price=1000, stock=10)
        order_id = add_to_cart(guest(), variant_id, 1)
        line_id = str(load_order(order_id).line_items[0].id)

        _update(order_id, line_id, 4, guest())

        order = load_order(order_id)
        assert order.line_items[0].quantity == 4
        assert order.item_total == 4000
        assert order.total == 4000

    def test_negative_quantity_is_rejected(self):
        variant_id = register_variant(stock=10)
        order_id = add_to_cart(guest(), variant_id, 1)
        line_id = str(load_order(order_id).line_items[0].id)
        with pytest.raises(ValidationError) as exc:
            _update(order_id, line_id, -1, guest())
        assert exc.value.messages["quantity"] == ["Quantity cannot be negative"]

    def test_update_beyond_stock_is_rejected(self):
        variant_id = register_variant(stock=3)
        order_id = add_to_cart(guest(), variant_id, 1)
        line_id = str(load_order(order_id).line_items[0].id)
        with pytest.raises(InsufficientStock):
            _update(order_id, line_id, 4, guest())
        assert load_order(order_id).line_items[0].quantity == 1

    def test_remove_line(self):
        variant_id = register_variant(stock=10)
        order_id = add_to_cart(guest(), variant_id, 2)
        line_id = str(load_order(order_id).line_items[0].id)

        current_domain.process(
            RemoveLineItem(order_id=order_id, line_item_id=line_id, **guest().as_command_fields()),
            asynchronous=False,
        )

        order = load_order(order_id)
        assert order.line_items == []
        assert order.total == 0
