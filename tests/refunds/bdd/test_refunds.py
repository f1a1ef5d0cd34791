"""BDD tests for the refund workflow."""

from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when
from storefront.ordering.order import Order
from storefront.payments.gateway import get_gateway
from storefront.refunds.workflow import ApproveRefund, RequestRefund

scenarios("features/refunds.feature")


def _request(order_id, amount):
    return current_domain.process(
        RequestRefund(
            order_id=order_id,
            refund_amount=amount,
            refund_reason="Customer returned the goods",
            refund_method="ONLINE",
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("an online order for {total:g} has been paid"), target_fixture="order_id")
def _(paid_order, total):
    return paid_order(total_amount=total)


@given("the payment gateway declines refunds")
def _():
    get_gateway().configure(should_succeed=False, failure_reason="Refund declined")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("a refund of {amount:g} is requested and approved"), target_fixture="decision")
def _(order_id, amount):
    refund_id = _request(order_id, amount)
    return current_domain.process(ApproveRefund(refund_id=refund_id, processed_by="admin-bdd"), asynchronous=False)


@when(parsers.cfparse("a refund of {amount:g} is requested"), target_fixture="error")
def _(order_id, amount):
    try:
        _request(order_id, amount)
    except ValidationError as exc:
        return {"exc": exc}
    return {"exc": None}


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the refund is "{status}"'))
def _(decision, status):
    assert decision["status"] == status


@then(parsers.cfparse('the order payment status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).payment_status == status


@then(parsers.cfparse('the request is refused with "{message}"'))
def _(error, message):
    assert error["exc"] is not None
    assert message in error["exc"].messages["refund_amount"]
