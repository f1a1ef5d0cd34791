"""Bulk (wholesale) orders — placement, approval, rejection and invoicing.

Bulk orders wait in PENDING_APPROVAL with payment PENDING (settled offline).
Stock is committed only when an administrator approves, and only the first
approval commits it. Invoices apply GST only when the buyer gave a GST number.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.configuration.settings import BulkOrderSettings
from storefront.domain import storefront
from storefront.inventory.allocation import find_warehouse_with_stock
from storefront.inventory.ledger import commit_without_warehouse, held_stock, load_products, product_lock_keys
from storefront.inventory.product import Product
from storefront.inventory.warehouse import Warehouse
from storefront.ordering.numbering import generate_order_number
from storefront.ordering.order import BulkOrderStatus, Order, PaymentMethod
from storefront.shared.errors import InsufficientStock
from storefront.shared.lines import parse_lines
from storefront.utils.locks import row_key, row_locks

logger = structlog.get_logger(__name__)

# (minimum total quantity, discount percent), highest tier first
BULK_DISCOUNT_TIERS = [(100, 20), (50, 15), (25, 10), (10, 5)]


def bulk_discount_percent(total_quantity):
    for threshold, percent in BULK_DISCOUNT_TIERS:
        if total_quantity >= threshold:
            return percent
    return 0


def build_invoice(order, settings, product_names=None):
    """Invoice summary for a bulk order. Pure computation; nothing is stored."""
    product_names = product_names or {}
    subtotal = order.subtotal
    discount_percent = order.bulk_discount_percent or 0
    discount_amount = subtotal * discount_percent / 100
    taxable_amount = subtotal - discount_amount
    gst_rate = settings.gst_rate if order.bulk_customer_gst else 0
    gst_amount = taxable_amount * gst_rate / 100

    return {
        "invoice_number": f"INV-{order.order_number}",
        "invoice_date": datetime.now(UTC).isoformat(),
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer": {
            "name": order.bulk_customer_name,
            "contact": order.bulk_customer_contact,
            "gst_number": order.bulk_customer_gst,
        },
        "items": [
            {
                "product_id": str(item.product_id),
                "name": product_names.get(str(item.product_id)),
                "quantity": item.quantity,
                "unit_price": item.price,
                "total": item.line_total,
            }
            for item in order.items
        ],
        "summary": {
            "subtotal": round(subtotal, 2),
            "discount_percent": discount_percent,
            "discount_amount": round(discount_amount, 2),
            "taxable_amount": round(taxable_amount, 2),
            "gst_rate": gst_rate,
            "gst_amount": round(gst_amount, 2),
            "grand_total": round(taxable_amount + gst_amount, 2),
        },
    }


def _load_bulk_order(order_id):
    order = current_domain.repository_for(Order).get(order_id)
    if not order.is_bulk_order:
        raise ValidationError({"order_id": ["Bulk order not found"]})
    return order


def _product_names(order):
    repo = current_domain.repository_for(Product)
    names = {}
    for item in order.items:
        product = repo._dao.query.filter(id=str(item.product_id)).all().items
        if product:
            names[str(item.product_id)] = product[0].name
    return names


@storefront.command(part_of="Order")
class PlaceBulkOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {product_id, quantity}
    bulk_customer_name = String(max_length=255)
    bulk_customer_contact = String(max_length=100)
    bulk_customer_gst = String(max_length=50)
    bulk_order_note = Text()


@storefront.command(part_of="Order")
class ApproveBulkOrder:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class RejectBulkOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@storefront.command(part_of="Order")
class GenerateBulkInvoice:
    order_id = Identifier(required=True)


@storefront.command_handler(part_of=Order)
class BulkOrderHandler:
    @handle(PlaceBulkOrder)
    def place_bulk_order(self, command):
        if not command.bulk_customer_name or not command.bulk_customer_contact:
            raise ValidationError({"bulk_customer_name": ["Bulk customer name and contact are required"]})
        lines = parse_lines(command.items)
        products = load_products(lines)

        shortfalls = [
            f"Insufficient stock for {products[line['product_id']].name}. "
            f"Available: {products[line['product_id']].stock}, Requested: {line['quantity']}"
            for line in lines
            if not products[line["product_id"]].has_stock(line["quantity"])
        ]
        if shortfalls:
            raise InsufficientStock({"items": shortfalls})

        priced = [
            {"product_id": line["product_id"], "quantity": line["quantity"], "price": products[line["product_id"]].price}
            for line in lines
        ]
        subtotal = sum(item["price"] * item["quantity"] for item in priced)
        discount_percent = bulk_discount_percent(sum(line["quantity"] for line in lines))
        discount_amount = subtotal * discount_percent / 100
        total_amount = subtotal - discount_amount

        order = Order.place(
            order_number=generate_order_number("BULK", random_length=8),
            customer_id=command.customer_id,
            items_data=priced,
            total_amount=total_amount,
            payment_method=PaymentMethod.COD.value,
            is_bulk_order=True,
            bulk_discount_percent=discount_percent,
            bulk_order_status=BulkOrderStatus.PENDING_APPROVAL.value,
            bulk_customer_name=command.bulk_customer_name,
            bulk_customer_contact=command.bulk_customer_contact,
            bulk_customer_gst=command.bulk_customer_gst or None,
            bulk_order_note=command.bulk_order_note or None,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Bulk order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            discount_percent=discount_percent,
            total_amount=total_amount,
        )
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "subtotal": subtotal,
            "discount_percent": discount_percent,
            "discount_amount": discount_amount,
            "total_amount": total_amount,
        }

    @handle(ApproveBulkOrder)
    def approve_bulk_order(self, command):
        with row_locks(row_key("order", command.order_id)):
            order = _load_bulk_order(command.order_id)
            lines = order.lines()

            with row_locks(*product_lock_keys(lines)):
                selected = find_warehouse_with_stock(lines)
                warehouse_id = str(selected.id) if selected is not None else None
                if not order.approve_bulk(warehouse_id=warehouse_id):
                    logger.info("Bulk order already approved", order_id=str(order.id))
                    return {"order_id": str(order.id), "approved": False, "bulk_order_status": order.bulk_order_status}

                products = load_products(lines)
                warehouse_keys = [row_key("warehouse", warehouse_id)] if warehouse_id else []
                with row_locks(*warehouse_keys):
                    if warehouse_id:
                        warehouse = current_domain.repository_for(Warehouse).get(warehouse_id)
                        with held_stock(warehouse, lines, products, reference=order.order_number) as held:
                            held.confirm()
                    else:
                        commit_without_warehouse(lines, products)

                current_domain.repository_for(Order).add(order)

        logger.info("Bulk order approved", order_id=str(order.id), warehouse_id=warehouse_id)
        return {"order_id": str(order.id), "approved": True, "bulk_order_status": order.bulk_order_status}

    @handle(RejectBulkOrder)
    def reject_bulk_order(self, command):
        with row_locks(row_key("order", command.order_id)):
            order = _load_bulk_order(command.order_id)
            order.reject_bulk(command.reason)
            current_domain.repository_for(Order).add(order)

        logger.info("Bulk order rejected", order_id=str(order.id), reason=command.reason)

    @handle(GenerateBulkInvoice)
    def generate_bulk_invoice(self, command):
        with row_locks(row_key("order", command.order_id)):
            order = _load_bulk_order(command.order_id)
            invoice = build_invoice(order, BulkOrderSettings.load(), _product_names(order))
            order.mark_invoice_generated(invoice["invoice_number"], invoice["summary"]["grand_total"])
            current_domain.repository_for(Order).add(order)
        return invoice
