"""Domain events for the Refund aggregate."""

from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Refund")
class RefundRequested:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    refund_amount = String(required=True)
    refund_method = String(required=True)
    reason = String(required=True)
    requested_at = DateTime(required=True)


@storefront.event(part_of="Refund")
class RefundApproved:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    processed_by = Identifier()
    approved_at = DateTime(required=True)


@storefront.event(part_of="Refund")
class RefundCompleted:
    """Money went back to the customer (gateway or out-of-band cash)."""

    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    refund_amount = String(required=True)
    gateway_refund_id = String()
    completed_at = DateTime(required=True)


@storefront.event(part_of="Refund")
class RefundFailed:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Refund")
class RefundRejected:
    __version__ = 1

    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    processed_by = Identifier()
    rejected_at = DateTime(required=True)
