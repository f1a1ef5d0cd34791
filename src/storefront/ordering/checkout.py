"""Checkout — turning a cart into an order, with stock held until it is committed.

Flow:
    1. Resolve products and pick a warehouse able to fulfill every line
       (fallback: the aggregate Product.stock counter)
    2. Price the lines from the catalog and apply any points redemption,
       capped so the discount never exceeds the order total
    3. Reserve the stock, create the order, redeem the points
    4a. COD: confirm the stock, mark PAID and award loyalty points
    4b. ONLINE: register a gateway order, confirm the stock and wait for
        the payment verification callback

Steps 3-4 run inside ``held_stock``; anything raised before the stock is
confirmed releases the reservation.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.configuration.settings import LoyaltySettings
from storefront.domain import storefront
from storefront.inventory.allocation import find_warehouse_with_stock
from storefront.inventory.ledger import held_stock, load_products, product_lock_keys
from storefront.inventory.warehouse import Warehouse
from storefront.loyalty.account import LoyaltyAccount, account_for, cap_redemption
from storefront.ordering.numbering import generate_order_number
from storefront.ordering.order import Order, PaymentMethod
from storefront.payments.gateway import get_gateway
from storefront.shared.errors import GatewayFailure, InsufficientStock
from storefront.shared.lines import parse_lines
from storefront.utils.locks import row_key, row_locks

logger = structlog.get_logger(__name__)

_CHECKOUT_METHODS = {PaymentMethod.ONLINE.value, PaymentMethod.COD.value}


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {product_id, quantity}
    payment_method = String(max_length=20, default=PaymentMethod.ONLINE.value)
    redeem_points = Integer(default=0, min_value=0)
    pincode = String(max_length=20)
    notes = Text()


def _price_lines(lines, products):
    return [
        {
            "product_id": line["product_id"],
            "quantity": line["quantity"],
            "price": products[line["product_id"]].price,
        }
        for line in lines
    ]


@storefront.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = parse_lines(command.items)
        payment_method = command.payment_method or PaymentMethod.ONLINE.value
        if payment_method not in _CHECKOUT_METHODS:
            raise ValidationError({"payment_method": [f"Unsupported payment method: {payment_method}"]})

        redeem_points = command.redeem_points or 0
        settings = LoyaltySettings.load()

        with row_locks(row_key("loyalty", command.customer_id), *product_lock_keys(lines)):
            products = load_products(lines)

            selected = find_warehouse_with_stock(lines, command.pincode)
            if selected is None:
                shortfalls = [
                    f"Insufficient stock for {products[line['product_id']].name}"
                    for line in lines
                    if not products[line["product_id"]].has_stock(line["quantity"])
                ]
                if shortfalls:
                    raise InsufficientStock({"items": shortfalls})

            priced = _price_lines(lines, products)
            total_amount = sum(item["price"] * item["quantity"] for item in priced)

            account = account_for(command.customer_id)
            points_redeemed, points_discount = 0, 0.0
            if redeem_points > 0:
                account.check_redeemable(redeem_points, settings)
                points_redeemed, points_discount = cap_redemption(redeem_points, total_amount, settings)
            final_amount = total_amount - points_discount

            order_number = generate_order_number("ORD")

            warehouse_keys = [row_key("warehouse", selected.id)] if selected is not None else []
            with row_locks(*warehouse_keys):
                # Reload under the lock; reserve re-checks availability
                warehouse = (
                    current_domain.repository_for(Warehouse).get(selected.id) if selected is not None else None
                )
                with held_stock(warehouse, lines, products, reference=order_number) as held:
                    order = Order.place(
                        order_number=order_number,
                        customer_id=command.customer_id,
                        items_data=priced,
                        total_amount=final_amount,
                        payment_method=payment_method,
                        warehouse_id=held.warehouse_id,
                        points_redeemed=points_redeemed,
                        points_discount=points_discount,
                        notes=command.notes,
                    )

                    if points_redeemed:
                        account.redeem(points_redeemed, settings, order_id=str(order.id), enforce_minimum=False)

                    gateway_order = None
                    points_earned = 0
                    if payment_method == PaymentMethod.COD.value:
                        held.confirm()
                        order.mark_paid()
                        points_earned = account.earn(str(order.id), final_amount, settings)
                        order.record_points_earned(points_earned)
                    else:
                        gateway_order = get_gateway().create_order(
                            round(final_amount * 100),
                            order_number,
                            {"order_id": str(order.id), "customer_id": str(command.customer_id)},
                        )
                        if not gateway_order.success:
                            raise GatewayFailure(gateway_order.failure_reason or "Gateway order creation failed")
                        order.attach_gateway_order(gateway_order.order_ref)
                        held.confirm()

                    current_domain.repository_for(Order).add(order)
                    if points_redeemed or points_earned:
                        current_domain.repository_for(LoyaltyAccount).add(account)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order_number,
            payment_method=payment_method,
            total_amount=final_amount,
            warehouse_id=order.warehouse_id,
            points_redeemed=points_redeemed,
        )

        result = {
            "order_id": str(order.id),
            "order_number": order_number,
            "payment_method": payment_method,
            "total_amount": final_amount,
            "warehouse_id": order.warehouse_id,
            "points_redeemed": points_redeemed,
            "points_discount": points_discount,
            "points_earned": points_earned,
            "points_balance": account.points_balance or 0,
        }
        if gateway_order is not None:
            result["gateway_order_ref"] = gateway_order.order_ref
            result["amount_minor_units"] = gateway_order.amount_minor_units
            result["currency"] = gateway_order.currency
        return result
