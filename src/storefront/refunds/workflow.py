"""Refund workflow — request, approve and reject commands with their handler.

Every command serializes on the order the refund belongs to, so the
single-outstanding-request rule and the refundable ceiling hold under
concurrent requests.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.order import Order, PaymentStatus
from storefront.payments.gateway import get_gateway
from storefront.refunds.refund import (
    OUTSTANDING_STATUSES,
    Refund,
    RefundMethod,
    RefundStatus,
    completed_total,
    refunds_for_order,
    remaining_refundable,
)
from storefront.shared.errors import GatewayFailure
from storefront.utils.locks import row_key, row_locks

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Refund")
class RequestRefund:
    order_id = Identifier(required=True)
    refund_amount = Float()
    refund_reason = String(max_length=1000)
    refund_method = String(max_length=20)


@storefront.command(part_of="Refund")
class ApproveRefund:
    refund_id = Identifier(required=True)
    processed_by = Identifier()


@storefront.command(part_of="Refund")
class RejectRefund:
    refund_id = Identifier(required=True)
    reason = String(max_length=1000)
    processed_by = Identifier()


@storefront.command_handler(part_of=Refund)
class RefundWorkflowHandler:
    @handle(RequestRefund)
    def request_refund(self, command):
        amount = command.refund_amount
        if amount is None or amount <= 0:
            raise ValidationError({"refund_amount": ["Refund amount must be greater than zero"]})
        if not command.refund_reason or not command.refund_reason.strip():
            raise ValidationError({"refund_reason": ["Refund reason is required"]})
        if command.refund_method not in {m.value for m in RefundMethod}:
            raise ValidationError({"refund_method": ["Refund method must be ONLINE or COD"]})

        with row_locks(row_key("order", command.order_id)):
            order = current_domain.repository_for(Order).get(command.order_id)

            if order.payment_status != PaymentStatus.PAID.value:
                raise ValidationError({"order_id": ["Only paid orders can be refunded"]})
            if amount > remaining_refundable(order) + 1e-9:
                raise ValidationError({"refund_amount": ["Refund amount exceeds remaining refundable amount"]})
            if any(r.status in OUTSTANDING_STATUSES for r in refunds_for_order(order.id)):
                raise ValidationError({"order_id": ["A refund request is already pending for this order"]})
            if command.refund_method == RefundMethod.ONLINE.value and not order.gateway_payment_ref:
                raise ValidationError({"refund_method": ["Order has no gateway payment to refund"]})

            refund = Refund.request(order.id, amount, command.refund_reason.strip(), command.refund_method)
            current_domain.repository_for(Refund).add(refund)

        logger.info(
            "Refund requested",
            refund_id=str(refund.id),
            order_id=str(order.id),
            refund_amount=amount,
            refund_method=command.refund_method,
        )
        return str(refund.id)

    @handle(ApproveRefund)
    def approve_refund(self, command):
        refund_repo = current_domain.repository_for(Refund)
        order_id = refund_repo.get(command.refund_id).order_id

        with row_locks(row_key("order", order_id)):
            refund = refund_repo.get(command.refund_id)
            order_repo = current_domain.repository_for(Order)
            order = order_repo.get(order_id)

            is_online = refund.refund_method == RefundMethod.ONLINE.value
            if is_online and not order.gateway_payment_ref:
                raise ValidationError({"refund_method": ["Order has no gateway payment to refund"]})

            refund.approve(processed_by=command.processed_by)

            if is_online:
                try:
                    result = get_gateway().initiate_refund(order.gateway_payment_ref, refund.refund_amount)
                except GatewayFailure as exc:
                    logger.warning("Gateway refund call failed", refund_id=str(refund.id), reason=exc.reason)
                    refund.fail(exc.reason)
                else:
                    if result.success:
                        refund.complete(gateway_refund_id=result.gateway_refund_id)
                    else:
                        refund.fail(result.failure_reason)
            else:
                # Cash is returned out of band
                refund.complete()

            refund_repo.add(refund)

            if refund.status == RefundStatus.COMPLETED.value:
                # The store still holds this refund in its pre-approval state
                already_completed = sum(
                    r.refund_amount
                    for r in refunds_for_order(order.id)
                    if r.status == RefundStatus.COMPLETED.value and str(r.id) != str(refund.id)
                )
                refunded_total = already_completed + refund.refund_amount
                if refunded_total >= order.total_amount - 1e-9:
                    order.mark_refunded(refunded_total)
                    order_repo.add(order)

        logger.info(
            "Refund processed",
            refund_id=str(refund.id),
            order_id=str(order_id),
            status=refund.status,
            gateway_refund_id=refund.gateway_refund_id,
            failure_reason=refund.failure_reason,
        )
        return {
            "refund_id": str(refund.id),
            "status": refund.status,
            "gateway_refund_id": refund.gateway_refund_id,
            "failure_reason": refund.failure_reason,
            "order_payment_status": order.payment_status,
        }

    @handle(RejectRefund)
    def reject_refund(self, command):
        refund_repo = current_domain.repository_for(Refund)
        order_id = refund_repo.get(command.refund_id).order_id

        with row_locks(row_key("order", order_id)):
            refund = refund_repo.get(command.refund_id)
            refund.reject(command.reason, processed_by=command.processed_by)
            refund_repo.add(refund)

        logger.info("Refund rejected", refund_id=str(refund.id), order_id=str(order_id))


def refund_overview(order_id):
    """Refunds for an order plus what can still be refunded."""
    order = current_domain.repository_for(Order).get(order_id)
    return {
        "order_id": str(order.id),
        "total_amount": order.total_amount,
        "payment_status": order.payment_status,
        "refunded_total": completed_total(order.id),
        "remaining_refundable": remaining_refundable(order),
        "refunds": [
            {
                "id": str(r.id),
                "refund_amount": r.refund_amount,
                "refund_reason": r.refund_reason,
                "refund_method": r.refund_method,
                "status": r.status,
                "gateway_refund_id": r.gateway_refund_id,
                "processed_by": str(r.processed_by) if r.processed_by else None,
                "failure_reason": r.failure_reason,
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in refunds_for_order(order.id)
        ],
    }
