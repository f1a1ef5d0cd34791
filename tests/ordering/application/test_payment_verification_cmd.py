"""Application tests for online payment verification."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.configuration.config import ConfigEntry
from storefront.inventory.warehouse import Warehouse
from storefront.loyalty.account import LoyaltyAccount
from storefront.ordering.checkout import PlaceOrder
from storefront.ordering.order import Order, OrderStatus, PaymentStatus
from storefront.ordering.payment import VerifyPayment
from storefront.payments.gateway.fake_adapter import sign


def _place_online_order(product_id, quantity=1, customer_id="cust-online"):
    return current_domain.process(
        PlaceOrder(
            customer_id=customer_id,
            items=json.dumps([{"product_id": product_id, "quantity": quantity}]),
            payment_method="ONLINE",
        ),
        asynchronous=False,
    )


def _verify(placed, payment_ref="pay_abc123", signature=None):
    order_ref = placed["gateway_order_ref"]
    return current_domain.process(
        VerifyPayment(
            order_id=placed["order_id"],
            gateway_order_ref=order_ref,
            gateway_payment_ref=payment_ref,
            signature=signature if signature is not None else sign(order_ref, payment_ref),
        ),
        asynchronous=False,
    )


class TestValidSignature:
    def test_order_paid_and_processing(self, make_product):
        placed = _place_online_order(make_product(price=1200.0))

        result = _verify(placed)

        assert result["verified"] is True
        order = current_domain.repository_for(Order).get(placed["order_id"])
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.status == OrderStatus.PROCESSING.value
        assert order.gateway_payment_ref == "pay_abc123"

    def test_malformed_stored_tier_threshold_does_not_block_payment(self, make_product):
        placed = _place_online_order(make_product(price=1200.0))
        current_domain.repository_for(ConfigEntry).add(
            ConfigEntry(key="LOYALTY_GOLD_TIER_THRESHOLD", value="2,000")
        )

        result = _verify(placed)

        assert result["verified"] is True
        order = current_domain.repository_for(Order).get(placed["order_id"])
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.points_earned == 12

    def test_points_awarded_on_amount_paid(self, make_product):
        placed = _place_online_order(make_product(price=1200.0))

        result = _verify(placed)

        assert result["points_earned"] == 12
        assert result["points_balance"] == 12
        assert current_domain.repository_for(LoyaltyAccount).get("cust-online").points_balance == 12
        assert current_domain.repository_for(Order).get(placed["order_id"]).points_earned == 12

    def test_second_verification_rejected(self, make_product):
        placed = _place_online_order(make_product())
        _verify(placed)

        with pytest.raises(ValidationError):
            _verify(placed)


class TestInvalidSignature:
    def test_payment_failed_and_order_cancelled(self, make_product, warehouse_id):
        product_id = make_product(stock=10)
        placed = _place_online_order(product_id, quantity=2)

        result = _verify(placed, signature="not-a-signature")

        assert result["verified"] is False
        assert result["error"] == "Invalid signature"
        order = current_domain.repository_for(Order).get(placed["order_id"])
        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.status == OrderStatus.CANCELLED.value

        # Committed stock is not returned on a failed payment
        record = current_domain.repository_for(Warehouse).get(warehouse_id).record_for(product_id)
        assert record.quantity == 8

    def test_no_points_for_failed_payment(self, make_product):
        placed = _place_online_order(make_product(price=1200.0))

        _verify(placed, signature="bad")

        assert current_domain.repository_for(LoyaltyAccount)._dao.query.all().total == 0


class TestPreconditions:
    def test_mismatched_gateway_order(self, make_product):
        placed = _place_online_order(make_product())

        with pytest.raises(ValidationError):
            current_domain.process(
                VerifyPayment(
                    order_id=placed["order_id"],
                    gateway_order_ref="order_someone_else",
                    gateway_payment_ref="pay_1",
                    signature=sign("order_someone_else", "pay_1"),
                ),
                asynchronous=False,
            )

    def test_cod_orders_are_not_verified(self, make_product):
        placed = current_domain.process(
            PlaceOrder(
                customer_id="cust-cod",
                items=json.dumps([{"product_id": make_product(), "quantity": 1}]),
                payment_method="COD",
            ),
            asynchronous=False,
        )

        with pytest.raises(ValidationError):
            current_domain.process(
                VerifyPayment(
                    order_id=placed["order_id"],
                    gateway_order_ref="order_x",
                    gateway_payment_ref="pay_1",
                    signature=sign("order_x", "pay_1"),
                ),
                asynchronous=False,
            )
