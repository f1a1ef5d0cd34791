"""FastAPI routes for the Refunds context.

Command routes are plain functions and run in the threadpool, since approval
waits on the payment gateway.
"""

from fastapi import APIRouter
from protean.utils.globals import current_domain

from storefront.refunds.api.schemas import (
    ApproveRefundRequest,
    OrderRefundsResponse,
    RefundDecisionResponse,
    RefundIdResponse,
    RejectRefundRequest,
    RequestRefundRequest,
    StatusResponse,
)
from storefront.refunds.workflow import ApproveRefund, RejectRefund, RequestRefund, refund_overview

refund_router = APIRouter(prefix="/refunds", tags=["refunds"])


@refund_router.post("", status_code=201, response_model=RefundIdResponse)
def request_refund(body: RequestRefundRequest) -> RefundIdResponse:
    command = RequestRefund(
        order_id=body.order_id,
        refund_amount=body.refund_amount,
        refund_reason=body.refund_reason,
        refund_method=body.refund_method,
    )
    result = current_domain.process(command, asynchronous=False)
    return RefundIdResponse(refund_id=result)


@refund_router.get("/orders/{order_id}", response_model=OrderRefundsResponse)
async def order_refunds(order_id: str) -> OrderRefundsResponse:
    return OrderRefundsResponse(**refund_overview(order_id))


@refund_router.put("/{refund_id}/approve", response_model=RefundDecisionResponse)
def approve_refund(refund_id: str, body: ApproveRefundRequest | None = None) -> RefundDecisionResponse:
    command = ApproveRefund(refund_id=refund_id, processed_by=body.processed_by if body else None)
    result = current_domain.process(command, asynchronous=False)
    return RefundDecisionResponse(**result)


@refund_router.put("/{refund_id}/reject", response_model=StatusResponse)
def reject_refund(refund_id: str, body: RejectRefundRequest) -> StatusResponse:
    command = RejectRefund(refund_id=refund_id, reason=body.reason, processed_by=body.processed_by)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
