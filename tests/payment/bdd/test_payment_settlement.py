"""BDD tests for payment settlement."""

from protean.exceptions import ValidationError
from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when
from shop import ADMIN, guest, load_order
from storefront.errors import IntegrityViolation
from storefront.payment.payment import Payment
from storefront.payment.refund import CreateRefund
from storefront.payment.verification import verify_payment
from storefront.payment.webhook import handle_webhook_event

scenarios("features/payment_settlement.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the client verifies the payment")
def _(checkout):
    verify_payment(checkout["order_id"], checkout["reference"], guest(checkout["token"]))


@when("the client tries to verify the payment")
def _(checkout, outcome):
    try:
        verify_payment(checkout["order_id"], checkout["reference"], guest(checkout["token"]))
    except (IntegrityViolation, ValidationError) as exc:
        outcome["exc"] = exc


@when(parsers.cfparse("the processor reports the intent succeeded for {amount:d} cents"))
def _(checkout, outcome, amount):
    event = {
        "id": "evt_bdd_001",
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": checkout["reference"],
                "amount": amount,
                "metadata": {"order_id": checkout["order_id"]},
            }
        },
    }
    outcome["webhook"] = handle_webhook_event(event)


@when(parsers.cfparse("an admin refunds {amount:d} cents"))
def _(checkout, amount):
    payment = (
        current_domain.repository_for(Payment)._dao.query.filter(order_id=checkout["order_id"]).all().first
    )
    current_domain.process(
        CreateRefund(payment_id=str(payment.id), amount=amount, admin_id=ADMIN.id),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the webhook outcome is "{result}"'))
def _(outcome, result):
    assert outcome["webhook"] == result


@then(parsers.cfparse('the order payment state is "{payment_state}"'))
def _(checkout, payment_state):
    assert load_order(checkout["order_id"]).payment_state == payment_state


@then("the payment is rejected as an amount mismatch")
def _(outcome):
    assert isinstance(outcome["exc"], IntegrityViolation)
    assert outcome["exc"].message == "Amount mismatch"


@then("the payment is rejected as not completed")
def _(outcome):
    assert isinstance(outcome["exc"], ValidationError)
    assert outcome["exc"].messages["payment"] == ["Payment not completed"]
