from uuid import uuid4

import pytest
from protean import current_domain
from storefront.ordering.order import Order, PaymentMethod


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


@pytest.fixture()
def paid_order():
    """Store a paid order and return its id."""

    def _make(total_amount=1000.0, payment_method=PaymentMethod.ONLINE.value, paid=True):
        order = Order.place(
            order_number=f"ORD-{uuid4().hex[:10].upper()}",
            customer_id="cust-refund",
            items_data=[{"product_id": "prod-1", "quantity": 1, "price": total_amount}],
            total_amount=total_amount,
            payment_method=payment_method,
        )
        if paid:
            payment_ref = "pay_refundable" if payment_method == PaymentMethod.ONLINE.value else None
            order.mark_paid(payment_ref=payment_ref)
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    return _make
