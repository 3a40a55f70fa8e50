"""Shared BDD fixtures and step definitions for payment settlement."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from shop import guest, load_order, order_in_delivery
from storefront.inventory.ledger import on_hand
from storefront.payment.gateway import get_processor
from storefront.payment.initiation import create_payment_intent
from storefront.payment.payment import Payment

STOCK = 5


@pytest.fixture()
def checkout():
    """Ids and references collected while the scenario runs."""
    return {}


@pytest.fixture()
def outcome():
    return {"webhook": None, "exc": None}


def _payment_count():
    return current_domain.repository_for(Payment)._dao.query.all().total


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('guest "{token}" has an order in delivery totalling {total:d} cents'))
def _(checkout, token, total):
    order_id, variant_id = order_in_delivery(actor=guest(token), price=total - 500, stock=STOCK)
    checkout.update(token=token, order_id=order_id, variant_id=variant_id)
    assert load_order(order_id).total == total


@given("the order has a payment intent")
def _(checkout):
    intent = create_payment_intent(checkout["order_id"], guest(checkout["token"]))
    checkout["reference"] = intent["payment_intent_id"]


@given(parsers.cfparse("the processor reports {amount:d} cents for the intent"))
def _(amount):
    get_processor().configure(reported_amount=amount)


@given("the processor reports the payment as not completed")
def _():
    get_processor().configure(paid=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is complete and paid")
def _(checkout):
    order = load_order(checkout["order_id"])
    assert order.state == "complete"
    assert order.payment_state == "paid"


@then(parsers.cfparse('the order is still in "{state}"'))
def _(checkout, state):
    assert load_order(checkout["order_id"]).state == state


@then(parsers.cfparse("exactly {count:d} payment is recorded"))
def _(count):
    assert _payment_count() == count


@then("no payment is recorded")
def _():
    assert _payment_count() == 0


@then("stock was consumed once")
def _(checkout):
    assert on_hand(checkout["variant_id"]) == STOCK - 1
