"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A customer, bulk buyer or store clerk placed an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True)
    items = Text(required=True)  # JSON list of {product_id, quantity, price}
    total_amount = String(required=True)  # Stored as string to avoid Float(0.0) issue
    warehouse_id = Identifier()
    is_bulk_order = String()
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    """Payment for the order was captured or collected."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = String(required=True)
    gateway_payment_ref = String()
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaymentFailed:
    """Payment verification failed and the order was cancelled."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """The fulfillment status moved."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class DeliveryPartnerAssigned:
    """A delivery partner was assigned or reassigned."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    previous_partner_id = Identifier()
    assigned_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderRefunded:
    """Completed refunds now cover the full order amount."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    refunded_total = String(required=True)
    refunded_at = DateTime(required=True)


@storefront.event(part_of="Order")
class LoyaltyPointsStamped:
    """Points earned on the order were recorded against it."""

    __version__ = 1

    order_id = Identifier(required=True)
    points_earned = Integer(required=True)
    stamped_at = DateTime(required=True)


@storefront.event(part_of="Order")
class BulkOrderApproved:
    """An administrator approved a bulk order and its stock was committed."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    warehouse_id = Identifier()
    approved_at = DateTime(required=True)


@storefront.event(part_of="Order")
class BulkOrderRejected:
    """An administrator rejected a bulk order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String()
    rejected_at = DateTime(required=True)


@storefront.event(part_of="Order")
class BulkInvoiceGenerated:
    """An invoice was issued for an approved bulk order."""

    __version__ = 1

    order_id = Identifier(required=True)
    invoice_number = String(required=True)
    grand_total = String(required=True)
    generated_at = DateTime(required=True)
