"""Order aggregate (CQRS) — the order payment and delivery lifecycle.

Fulfillment status:
    PENDING → PROCESSING → SHIPPED → OUT_FOR_DELIVERY → DELIVERED
    PENDING / PROCESSING / SHIPPED → CANCELLED
    DELIVERED and CANCELLED are terminal.

Payment status:
    PENDING → PAID | FAILED, PAID → REFUNDED (refund workflow only).

Bulk orders carry a parallel approval sub-state:
    PENDING_APPROVAL → APPROVED | REJECTED, APPROVED → INVOICE_GENERATED

Line items are fixed at placement; prices are snapshots and are never
re-read from the catalog afterwards.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.ordering.events import (
    BulkInvoiceGenerated,
    BulkOrderApproved,
    BulkOrderRejected,
    DeliveryPartnerAssigned,
    LoyaltyPointsStamped,
    OrderPaid,
    OrderPaymentFailed,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
)
from storefront.shared.errors import InvalidTransition


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(Enum):
    ONLINE = "ONLINE"
    COD = "COD"
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"


class BulkOrderStatus(Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    INVOICE_GENERATED = "INVOICE_GENERATED"


class Actor(Enum):
    ADMIN = "ADMIN"
    DELIVERY_PARTNER = "DELIVERY_PARTNER"
    SYSTEM = "SYSTEM"


def _parse(enum_cls, value, field):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError({field: [f"Invalid value: {value}"]}) from None


# State machine transition map (one step at a time)
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_FORWARD_ORDER = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# What a delivery partner may do to an order assigned to them
_PARTNER_TRANSITIONS = {
    OrderStatus.PROCESSING: {OrderStatus.OUT_FOR_DELIVERY},
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A line of the order with the unit price captured at placement."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)

    @property
    def line_total(self):
        return self.price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    total_amount = Float(default=0.0, min_value=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.ONLINE.value)
    warehouse_id = Identifier()
    delivery_partner_id = Identifier()

    points_redeemed = Integer(default=0, min_value=0)
    points_discount = Float(default=0.0, min_value=0.0)
    points_earned = Integer(default=0, min_value=0)

    gateway_order_ref = String(max_length=100)
    gateway_payment_ref = String(max_length=100)
    gateway_signature = String(max_length=255)

    is_bulk_order = Boolean(default=False)
    bulk_discount_percent = Integer(default=0, min_value=0)
    bulk_order_status = String(choices=BulkOrderStatus)
    bulk_customer_name = String(max_length=255)
    bulk_customer_contact = String(max_length=100)
    bulk_customer_gst = String(max_length=50)
    bulk_order_note = Text()
    invoice_number = String(max_length=100)

    delivery_notes = Text()
    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        items_data,
        total_amount,
        payment_method=PaymentMethod.ONLINE.value,
        warehouse_id=None,
        **extra,
    ):
        """Create a new order.

        Args:
            items_data: List of dicts with product_id, quantity, price.
            extra: Optional fields such as points_redeemed, points_discount,
                   bulk_* fields, notes and status overrides.
        """
        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            customer_id=str(customer_id),
            total_amount=total_amount,
            payment_method=payment_method,
            warehouse_id=warehouse_id,
            created_at=now,
            updated_at=now,
            **extra,
        )
        for item in items_data:
            order.add_items(
                OrderItem(
                    id=str(uuid4()),
                    product_id=str(item["product_id"]),
                    quantity=item["quantity"],
                    price=item["price"],
                )
            )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                payment_method=payment_method,
                items=json.dumps(
                    [
                        {"product_id": str(i["product_id"]), "quantity": i["quantity"], "price": i["price"]}
                        for i in items_data
                    ]
                ),
                total_amount=str(total_amount),
                warehouse_id=warehouse_id,
                is_bulk_order=str(bool(extra.get("is_bulk_order", False))),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def subtotal(self):
        return sum(item.line_total for item in (self.items or []))

    def lines(self):
        """The items as stock ledger lines."""
        merged = {}
        for item in self.items or []:
            merged[str(item.product_id)] = merged.get(str(item.product_id), 0) + item.quantity
        return [{"product_id": pid, "quantity": qty} for pid, qty in merged.items()]

    def _touch(self):
        self.updated_at = datetime.now(UTC)
        return self.updated_at

    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_payment_transition(self, target):
        current = PaymentStatus(self.payment_status)
        if target not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise InvalidTransition(
                {"payment_status": [f"Cannot transition payment from {current.value} to {target.value}"]}
            )

    def _set_status(self, target, actor):
        previous = self.status
        self.status = target.value
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_by=actor.value,
                changed_at=self._touch(),
            )
        )

    # -------------------------------------------------------------------
    # Fulfillment status
    # -------------------------------------------------------------------
    def advance_to(self, target_status, actor=Actor.ADMIN):
        """Move the fulfillment status as ``actor``.

        Administrators may jump to any later state or cancel from a
        cancellable one. The system follows single-step transitions.
        """
        target = _parse(OrderStatus, target_status, "status")
        current = OrderStatus(self.status)

        if actor == Actor.ADMIN:
            if current in _TERMINAL_STATES:
                raise InvalidTransition({"status": [f"Order is already {current.value}"]})
            if target == OrderStatus.CANCELLED:
                self._assert_can_transition(target)
            elif _FORWARD_ORDER.index(target) <= _FORWARD_ORDER.index(current):
                raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target.value}"]})
        elif actor == Actor.DELIVERY_PARTNER:
            if target not in _PARTNER_TRANSITIONS.get(current, set()):
                raise InvalidTransition(
                    {"status": [f"Delivery partner cannot move order from {current.value} to {target.value}"]}
                )
        else:
            self._assert_can_transition(target)

        self._set_status(target, actor)

    def cancel(self, actor=Actor.SYSTEM):
        self._assert_can_transition(OrderStatus.CANCELLED)
        self._set_status(OrderStatus.CANCELLED, actor)

    def assign_delivery_partner(self, partner_id):
        if not partner_id:
            raise ValidationError({"delivery_partner_id": ["Delivery partner is required"]})
        current = OrderStatus(self.status)
        if current in _TERMINAL_STATES:
            raise InvalidTransition({"delivery_partner_id": [f"Cannot assign a partner to a {current.value} order"]})

        previous = self.delivery_partner_id
        self.delivery_partner_id = str(partner_id)
        self.raise_(
            DeliveryPartnerAssigned(
                order_id=str(self.id),
                delivery_partner_id=str(partner_id),
                previous_partner_id=previous,
                assigned_at=self._touch(),
            )
        )

    def record_delivery_update(self, partner_id, status=None, payment_status=None, delivery_notes=None):
        """Apply a delivery partner's update to an order assigned to them."""
        if not self.delivery_partner_id or str(self.delivery_partner_id) != str(partner_id):
            raise ValidationError({"delivery_partner_id": ["Order is not assigned to this delivery partner"]})
        if status and status not in (OrderStatus.OUT_FOR_DELIVERY.value, OrderStatus.DELIVERED.value):
            raise ValidationError({"status": ["Delivery partners can only set OUT_FOR_DELIVERY or DELIVERED"]})
        if payment_status and payment_status != PaymentStatus.PAID.value:
            raise ValidationError({"payment_status": ["Delivery partners can only mark payment as PAID"]})
        if payment_status:
            self._assert_payment_transition(PaymentStatus.PAID)

        if status:
            self.advance_to(status, actor=Actor.DELIVERY_PARTNER)
        if payment_status:
            self.mark_paid()
        if delivery_notes is not None:
            self.delivery_notes = delivery_notes
            self._touch()

    # -------------------------------------------------------------------
    # Payment status
    # -------------------------------------------------------------------
    def attach_gateway_order(self, order_ref):
        self.gateway_order_ref = order_ref
        self._touch()

    def mark_paid(self, payment_ref=None, signature=None):
        self._assert_payment_transition(PaymentStatus.PAID)
        self.payment_status = PaymentStatus.PAID.value
        if payment_ref:
            self.gateway_payment_ref = payment_ref
        if signature:
            self.gateway_signature = signature
        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                order_number=self.order_number,
                amount=str(self.total_amount),
                gateway_payment_ref=payment_ref,
                paid_at=self._touch(),
            )
        )

    def confirm_online_payment(self, payment_ref, signature):
        """Verified gateway payment: PAID and into PROCESSING."""
        self._assert_payment_transition(PaymentStatus.PAID)
        self._assert_can_transition(OrderStatus.PROCESSING)
        self.mark_paid(payment_ref=payment_ref, signature=signature)
        self._set_status(OrderStatus.PROCESSING, Actor.SYSTEM)

    def fail_payment(self, reason=None):
        """Payment could not be verified: FAILED, and the order is cancelled."""
        self._assert_payment_transition(PaymentStatus.FAILED)
        self.payment_status = PaymentStatus.FAILED.value
        if OrderStatus.CANCELLED in _VALID_TRANSITIONS.get(OrderStatus(self.status), set()):
            self._set_status(OrderStatus.CANCELLED, Actor.SYSTEM)
        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                failed_at=self._touch(),
            )
        )

    def set_payment_status(self, payment_status):
        """Administrative payment update. REFUNDED is reserved for the refund workflow."""
        target = _parse(PaymentStatus, payment_status, "payment_status")
        if target == PaymentStatus.REFUNDED:
            raise InvalidTransition({"payment_status": ["REFUNDED is set only by completed refunds"]})
        if target == PaymentStatus.PAID:
            self.mark_paid()
        else:
            self._assert_payment_transition(target)
            self.payment_status = target.value
            self._touch()

    def mark_refunded(self, refunded_total):
        self._assert_payment_transition(PaymentStatus.REFUNDED)
        self.payment_status = PaymentStatus.REFUNDED.value
        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                refunded_total=str(refunded_total),
                refunded_at=self._touch(),
            )
        )

    def record_points_earned(self, points):
        if not points:
            return
        self.points_earned = points
        self.raise_(
            LoyaltyPointsStamped(
                order_id=str(self.id),
                points_earned=points,
                stamped_at=self._touch(),
            )
        )

    # -------------------------------------------------------------------
    # Bulk approval
    # -------------------------------------------------------------------
    def _assert_bulk(self):
        if not self.is_bulk_order:
            raise ValidationError({"order": ["Not a bulk order"]})

    def approve_bulk(self, warehouse_id=None):
        """Approve a bulk order. Returns False if it was already approved.

        The caller commits stock only when this returns True, so approval
        decrements stock at most once per order.
        """
        self._assert_bulk()
        current = BulkOrderStatus(self.bulk_order_status)
        if current in (BulkOrderStatus.APPROVED, BulkOrderStatus.INVOICE_GENERATED):
            return False
        if current != BulkOrderStatus.PENDING_APPROVAL:
            raise InvalidTransition({"bulk_order_status": [f"Cannot approve a {current.value} bulk order"]})

        self.bulk_order_status = BulkOrderStatus.APPROVED.value
        if warehouse_id:
            self.warehouse_id = str(warehouse_id)
        self.raise_(
            BulkOrderApproved(
                order_id=str(self.id),
                order_number=self.order_number,
                warehouse_id=self.warehouse_id,
                approved_at=self._touch(),
            )
        )
        return True

    def reject_bulk(self, reason=None):
        self._assert_bulk()
        current = BulkOrderStatus(self.bulk_order_status)
        if current != BulkOrderStatus.PENDING_APPROVAL:
            raise InvalidTransition({"bulk_order_status": [f"Cannot reject a {current.value} bulk order"]})

        self.bulk_order_status = BulkOrderStatus.REJECTED.value
        if reason:
            prefix = f"{self.bulk_order_note} | " if self.bulk_order_note else ""
            self.bulk_order_note = f"{prefix}REJECTED: {reason}"
        self.cancel(actor=Actor.ADMIN)
        self.raise_(
            BulkOrderRejected(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                rejected_at=self._touch(),
            )
        )

    def mark_invoice_generated(self, invoice_number, grand_total):
        self._assert_bulk()
        current = BulkOrderStatus(self.bulk_order_status)
        if current == BulkOrderStatus.INVOICE_GENERATED:
            return
        if current != BulkOrderStatus.APPROVED:
            raise InvalidTransition(
                {"bulk_order_status": [f"Invoices are generated for APPROVED bulk orders, not {current.value}"]}
            )
        self.bulk_order_status = BulkOrderStatus.INVOICE_GENERATED.value
        self.invoice_number = invoice_number
        self.raise_(
            BulkInvoiceGenerated(
                order_id=str(self.id),
                invoice_number=invoice_number,
                grand_total=str(grand_total),
                generated_at=self._touch(),
            )
        )
