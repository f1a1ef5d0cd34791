"""BDD tests for bulk orders."""

import json

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when
from storefront.inventory.product import Product
from storefront.ordering.bulk import ApproveBulkOrder, PlaceBulkOrder, RejectBulkOrder
from storefront.ordering.order import Order

scenarios("features/bulk_orders.feature")


@pytest.fixture()
def products():
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced at {price:g} with {stock:d} units in stock'))
def _(make_product, products, name, price, stock):
    products[name] = make_product(name=name, price=price, stock=stock)


@given(
    parsers.cfparse('a bulk order for {quantity:d} units of "{name}" is placed'),
    target_fixture="placed",
)
@when(
    parsers.cfparse('a bulk order for {quantity:d} units of "{name}" is placed'),
    target_fixture="placed",
)
def _(products, quantity, name):
    return current_domain.process(
        PlaceBulkOrder(
            customer_id="cust-bulk",
            items=json.dumps([{"product_id": products[name], "quantity": quantity}]),
            bulk_customer_name="Kapoor Sweets",
            bulk_customer_contact="9855555555",
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the bulk order is approved")
def _(placed):
    current_domain.process(ApproveBulkOrder(order_id=placed["order_id"]), asynchronous=False)


@when(parsers.cfparse('the bulk order is rejected because "{reason}"'))
def _(placed, reason):
    current_domain.process(RejectBulkOrder(order_id=placed["order_id"], reason=reason), asynchronous=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the bulk discount is {percent:d} percent"))
def _(placed, percent):
    assert placed["discount_percent"] == percent


@then(parsers.cfparse("the bulk order total is {total:g}"))
def _(placed, total):
    assert placed["total_amount"] == pytest.approx(total)


@then(parsers.cfparse('"{name}" has {stock:d} units in stock'))
def _(products, name, stock):
    assert current_domain.repository_for(Product).get(products[name]).stock == stock


@then(parsers.cfparse('the bulk order status is "{status}"'))
def _(placed, status):
    assert current_domain.repository_for(Order).get(placed["order_id"]).bulk_order_status == status
