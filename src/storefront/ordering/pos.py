"""Point-of-sale orders — in-store sales that are handed over and paid on the spot."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.ledger import commit_without_warehouse, load_products, product_lock_keys
from storefront.loyalty.account import format_rupees
from storefront.ordering.numbering import generate_order_number
from storefront.ordering.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from storefront.shared.lines import parse_lines
from storefront.utils.locks import row_locks

logger = structlog.get_logger(__name__)

POS_PAYMENT_METHODS = {PaymentMethod.CASH.value, PaymentMethod.CARD.value, PaymentMethod.UPI.value}


@storefront.command(part_of="Order")
class PlacePosOrder:
    customer_id = Identifier(required=True)  # the staff account ringing up the sale
    items = Text(required=True)  # JSON list of {product_id, quantity}
    payment_method = String(max_length=20, default=PaymentMethod.CASH.value)
    customer_name = String(max_length=255)
    customer_phone = String(max_length=20)
    amount_received = Float(min_value=0.0)


@storefront.command_handler(part_of=Order)
class PosOrderHandler:
    @handle(PlacePosOrder)
    def place_pos_order(self, command):
        payment_method = command.payment_method or PaymentMethod.CASH.value
        if payment_method not in POS_PAYMENT_METHODS:
            raise ValidationError({"payment_method": [f"Unsupported payment method: {payment_method}"]})
        lines = parse_lines(command.items)

        with row_locks(*product_lock_keys(lines)):
            products = load_products(lines)
            unavailable = [products[line["product_id"]].name for line in lines if not products[line["product_id"]].is_available]
            if unavailable:
                raise ValidationError({"items": [f"Product not available: {name}" for name in unavailable]})

            priced = [
                {"product_id": line["product_id"], "quantity": line["quantity"], "price": products[line["product_id"]].price}
                for line in lines
            ]
            total_amount = sum(item["price"] * item["quantity"] for item in priced)

            amount_received = command.amount_received if command.amount_received is not None else total_amount
            if payment_method == PaymentMethod.CASH.value and amount_received < total_amount:
                raise ValidationError({"amount_received": ["Amount received is less than the order total"]})
            change_due = round(amount_received - total_amount, 2) if payment_method == PaymentMethod.CASH.value else 0.0

            commit_without_warehouse(lines, products)

            notes = [
                "POS order",
                f"Customer: {command.customer_name or 'Walk-in'}",
                f"Payment: {payment_method}",
                f"Received: {format_rupees(amount_received)}",
                f"Change: {format_rupees(change_due)}",
            ]
            if command.customer_phone:
                notes.insert(2, f"Phone: {command.customer_phone}")

            order = Order.place(
                order_number=generate_order_number("POS", random_length=6),
                customer_id=command.customer_id,
                items_data=priced,
                total_amount=total_amount,
                payment_method=payment_method,
                status=OrderStatus.DELIVERED.value,
                payment_status=PaymentStatus.PAID.value,
                notes=" | ".join(notes),
            )
            current_domain.repository_for(Order).add(order)

        logger.info(
            "POS order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            payment_method=payment_method,
            total_amount=total_amount,
        )
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "total_amount": total_amount,
            "payment_method": payment_method,
            "amount_received": amount_received,
            "change_due": change_due,
        }
