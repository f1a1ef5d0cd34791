"""Pydantic request/response schemas for the Refunds API."""

from pydantic import BaseModel, Field


class RequestRefundRequest(BaseModel):
    order_id: str
    refund_amount: float = Field(gt=0)
    refund_reason: str = Field(min_length=1)
    refund_method: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": "ord-001",
                    "refund_amount": 250.0,
                    "refund_reason": "Items arrived spoiled",
                    "refund_method": "ONLINE",
                }
            ]
        }
    }


class ApproveRefundRequest(BaseModel):
    processed_by: str | None = None


class RejectRefundRequest(BaseModel):
    reason: str
    processed_by: str | None = None


class RefundIdResponse(BaseModel):
    refund_id: str


class RefundDecisionResponse(BaseModel):
    refund_id: str
    status: str
    gateway_refund_id: str | None = None
    failure_reason: str | None = None
    order_payment_status: str


class RefundSchema(BaseModel):
    id: str
    refund_amount: float
    refund_reason: str
    refund_method: str
    status: str
    gateway_refund_id: str | None = None
    processed_by: str | None = None
    failure_reason: str | None = None
    created_at: str | None = None


class OrderRefundsResponse(BaseModel):
    order_id: str
    total_amount: float
    payment_status: str
    refunded_total: float
    remaining_refundable: float
    refunds: list[RefundSchema]


class StatusResponse(BaseModel):
    status: str = "ok"
