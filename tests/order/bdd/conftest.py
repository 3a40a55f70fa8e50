"""Shared BDD fixtures and step definitions for checkout."""

import pytest
from pytest_bdd import given, parsers, then
from shop import (
    add_to_cart,
    choose_shipping,
    create_promotion,
    create_shipping_method,
    create_tax_rate,
    guest,
    load_order,
    register_variant,
    set_address,
)
from storefront.inventory.ledger import on_hand


@pytest.fixture()
def catalog():
    """Variant and shipping method ids by display name."""
    return {"variants": {}, "methods": {}}


@pytest.fixture()
def carts():
    """Order ids by guest session token."""
    return {}


@pytest.fixture()
def order_id(carts):
    """The order of the shopper the scenario follows."""
    return carts["sess-ann"]


@pytest.fixture()
def error():
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a variant "{name}" priced at {price:d} cents with {stock:d} units in stock'))
def _(catalog, name, price, stock):
    catalog["variants"][name] = register_variant(price=price, product_name=name, sku=name.upper(), stock=stock)


@given(parsers.cfparse('a shipping method "{name}" costing {cost:d} cents'))
def _(catalog, name, cost):
    catalog["methods"][name] = create_shipping_method(base_cost=cost, name=name)


@given(parsers.cfparse('a coupon "{code}" taking {percent:d} percent off'))
def _(code, percent):
    create_promotion(code=code, calculator="PercentOff", preferences={"percent": percent})


@given(parsers.cfparse('a {percent:d} percent tax rate for "{country}"'))
def _(percent, country):
    create_tax_rate(amount=percent / 100, country=country)


@given(parsers.cfparse('guest "{token}" has {quantity:d} "{name}" in the cart'))
def _(catalog, carts, token, quantity, name):
    carts[token] = add_to_cart(guest(token), catalog["variants"][name], quantity)


@given(parsers.cfparse('guest "{token}" has chosen "{method}" shipping'))
def _(catalog, carts, token, method):
    set_address(carts[token], guest(token))
    choose_shipping(carts[token], guest(token), catalog["methods"][method])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{state}" and "{payment_state}"'))
def _(order_id, state, payment_state):
    order = load_order(order_id)
    assert order.state == state
    assert order.payment_state == payment_state


@then(parsers.cfparse('the order is still in "{state}"'))
def _(order_id, state):
    assert load_order(order_id).state == state


@then(parsers.cfparse("the order total is {total:d} cents"))
def _(order_id, total):
    assert load_order(order_id).total == total


@then(parsers.cfparse("the order promotion total is {amount:d} cents"))
def _(order_id, amount):
    assert load_order(order_id).promo_total == amount


@then(parsers.cfparse("the order tax total is {amount:d} cents"))
def _(order_id, amount):
    assert load_order(order_id).tax_total == amount


@then(parsers.cfparse('"{name}" has {count:d} units on hand'))
def _(catalog, name, count):
    assert on_hand(catalog["variants"][name]) == count
