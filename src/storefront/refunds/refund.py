"""Refund aggregate — one request to return money for a paid order.

State Machine:
    REQUESTED → APPROVED → COMPLETED | FAILED
    REQUESTED → REJECTED

COMPLETED, FAILED and REJECTED are terminal; a failed gateway refund is
retried by filing a new request. Refunds never move stock.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.refunds.events import (
    RefundApproved,
    RefundCompleted,
    RefundFailed,
    RefundRejected,
    RefundRequested,
)
from storefront.shared.errors import InvalidTransition


class RefundStatus(Enum):
    REQUESTED = "REQUESTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RefundMethod(Enum):
    ONLINE = "ONLINE"
    COD = "COD"


OUTSTANDING_STATUSES = {RefundStatus.REQUESTED.value, RefundStatus.APPROVED.value}


@storefront.aggregate
class Refund:
    order_id = Identifier(required=True)
    refund_amount = Float(required=True, min_value=0.0)
    refund_reason = Text(required=True)
    refund_method = String(choices=RefundMethod, required=True)
    status = String(choices=RefundStatus, default=RefundStatus.REQUESTED.value)
    gateway_refund_id = String(max_length=100)
    processed_by = Identifier()
    failure_reason = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def request(cls, order_id, amount, reason, method):
        now = datetime.now(UTC)
        refund = cls(
            order_id=str(order_id),
            refund_amount=amount,
            refund_reason=reason,
            refund_method=method,
            created_at=now,
            updated_at=now,
        )
        refund.raise_(
            RefundRequested(
                refund_id=str(refund.id),
                order_id=str(order_id),
                refund_amount=str(amount),
                refund_method=method,
                reason=reason,
                requested_at=now,
            )
        )
        return refund

    def _touch(self):
        self.updated_at = datetime.now(UTC)
        return self.updated_at

    def _assert_status(self, expected, action):
        if self.status != expected.value:
            raise InvalidTransition({"status": [f"Cannot {action} a refund in {self.status} state"]})

    def approve(self, processed_by=None):
        self._assert_status(RefundStatus.REQUESTED, "approve")
        self.status = RefundStatus.APPROVED.value
        if processed_by:
            self.processed_by = str(processed_by)
        self.raise_(
            RefundApproved(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                processed_by=self.processed_by,
                approved_at=self._touch(),
            )
        )

    def complete(self, gateway_refund_id=None):
        self._assert_status(RefundStatus.APPROVED, "complete")
        self.status = RefundStatus.COMPLETED.value
        self.gateway_refund_id = gateway_refund_id
        self.raise_(
            RefundCompleted(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                refund_amount=str(self.refund_amount),
                gateway_refund_id=gateway_refund_id,
                completed_at=self._touch(),
            )
        )

    def fail(self, reason):
        self._assert_status(RefundStatus.APPROVED, "fail")
        self.status = RefundStatus.FAILED.value
        self.failure_reason = reason or "Refund failed"
        self.raise_(
            RefundFailed(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                reason=self.failure_reason,
                failed_at=self._touch(),
            )
        )

    def reject(self, reason, processed_by=None):
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["Rejection reason is required"]})
        self._assert_status(RefundStatus.REQUESTED, "reject")
        self.status = RefundStatus.REJECTED.value
        self.refund_reason = f"{self.refund_reason} | REJECTED: {reason.strip()}"
        if processed_by:
            self.processed_by = str(processed_by)
        self.raise_(
            RefundRejected(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason.strip(),
                processed_by=self.processed_by,
                rejected_at=self._touch(),
            )
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def refunds_for_order(order_id):
    """All refunds filed against an order, oldest first."""
    refunds = current_domain.repository_for(Refund)._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(refunds, key=lambda r: r.created_at)


def completed_total(order_id):
    return sum(r.refund_amount for r in refunds_for_order(order_id) if r.status == RefundStatus.COMPLETED.value)


def remaining_refundable(order):
    return max(round(order.total_amount - completed_total(order.id), 2), 0.0)
