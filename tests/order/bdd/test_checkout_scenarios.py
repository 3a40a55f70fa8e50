"""BDD tests for checkout."""

from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when
from shop import ADMIN, add_to_cart, apply_coupon, choose_shipping, guest, load_order, set_address
from storefront.errors import InsufficientStock
from storefront.inventory.adjustment import AdjustStock
from storefront.order.checkout import CompleteCheckout

scenarios("features/checkout.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('guest "{token}" enters a shipping address in "{country}"'))
def _(carts, token, country):
    set_address(carts[token], guest(token), country_code=country)


@when(parsers.cfparse('guest "{token}" chooses "{method}" shipping'))
def _(catalog, carts, token, method):
    choose_shipping(carts[token], guest(token), catalog["methods"][method])


@when(parsers.cfparse('guest "{token}" completes checkout'))
def _(carts, token):
    current_domain.process(
        CompleteCheckout(order_id=carts[token], **guest(token).as_command_fields()),
        asynchronous=False,
    )


@when(parsers.cfparse('guest "{token}" tries to complete checkout'))
def _(carts, token, error):
    try:
        current_domain.process(
            CompleteCheckout(order_id=carts[token], **guest(token).as_command_fields()),
            asynchronous=False,
        )
    except InsufficientStock as exc:
        error["exc"] = exc


@when(parsers.cfparse('guest "{token}" applies coupon "{code}"'))
def _(token, code):
    apply_coupon(code, guest(token))


@when(parsers.cfparse('guest "{token}" adds {quantity:d} "{name}" to the cart'))
def _(catalog, carts, token, quantity, name):
    carts[token] = add_to_cart(guest(token), catalog["variants"][name], quantity)


@when(parsers.cfparse('{quantity:d} unit of "{name}" is written off'))
def _(catalog, quantity, name):
    current_domain.process(
        AdjustStock(variant_id=catalog["variants"][name], quantity=-quantity, reason="shrinkage", admin_id=ADMIN.id),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("checkout fails having requested {requested:d} with {available:d} available"))
def _(error, requested, available):
    assert isinstance(error["exc"], InsufficientStock)
    assert error["exc"].requested == requested
    assert error["exc"].available == available


@then(parsers.cfparse('guest "{token}" has {count:d} items in the cart'))
def _(carts, token, count):
    assert load_order(carts[token]).item_count == count
