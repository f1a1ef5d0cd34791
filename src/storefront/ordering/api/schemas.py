"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class LineItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=0)


class OrderItemSchema(BaseModel):
    product_id: str
    quantity: int
    price: float


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    customer_id: str
    items: list[LineItemSchema] = Field(min_length=1)
    payment_method: str = "ONLINE"
    redeem_points: int = Field(default=0, ge=0)
    pincode: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "payment_method": "COD",
                    "redeem_points": 0,
                    "pincode": "560001",
                }
            ]
        }
    }


class VerifyPaymentRequest(BaseModel):
    gateway_order_ref: str
    gateway_payment_ref: str
    signature: str


class UpdateOrderStatusRequest(BaseModel):
    status: str | None = None
    payment_status: str | None = None


class AssignDeliveryPartnerRequest(BaseModel):
    delivery_partner_id: str


class UpdateDeliveryRequest(BaseModel):
    delivery_partner_id: str
    status: str | None = None
    payment_status: str | None = None
    delivery_notes: str | None = None


# ---------------------------------------------------------------------------
# Bulk / POS Request Schemas
# ---------------------------------------------------------------------------
class PlaceBulkOrderRequest(BaseModel):
    customer_id: str
    items: list[LineItemSchema] = Field(min_length=1)
    bulk_customer_name: str
    bulk_customer_contact: str
    bulk_customer_gst: str | None = None
    bulk_order_note: str | None = None


class RejectBulkOrderRequest(BaseModel):
    reason: str | None = None


class PlacePosOrderRequest(BaseModel):
    customer_id: str
    items: list[LineItemSchema] = Field(min_length=1)
    payment_method: str = "CASH"
    customer_name: str | None = None
    customer_phone: str | None = None
    amount_received: float | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    payment_method: str
    total_amount: float
    warehouse_id: str | None = None
    points_redeemed: int = 0
    points_discount: float = 0.0
    points_earned: int = 0
    points_balance: int = 0
    gateway_order_ref: str | None = None
    amount_minor_units: int | None = None
    currency: str | None = None


class VerifyPaymentResponse(BaseModel):
    verified: bool
    order_id: str
    status: str
    payment_status: str
    points_earned: int = 0
    points_balance: int | None = None
    loyalty_tier: str | None = None
    error: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_status: str
    payment_method: str
    total_amount: float
    warehouse_id: str | None = None
    delivery_partner_id: str | None = None
    points_redeemed: int = 0
    points_discount: float = 0.0
    points_earned: int = 0
    is_bulk_order: bool = False
    bulk_order_status: str | None = None
    bulk_discount_percent: int = 0
    invoice_number: str | None = None
    delivery_notes: str | None = None
    notes: str | None = None
    items: list[OrderItemSchema]


class BulkOrderResponse(BaseModel):
    order_id: str
    order_number: str
    subtotal: float
    discount_percent: int
    discount_amount: float
    total_amount: float


class BulkApprovalResponse(BaseModel):
    order_id: str
    approved: bool
    bulk_order_status: str


class PosOrderResponse(BaseModel):
    order_id: str
    order_number: str
    total_amount: float
    payment_method: str
    amount_received: float
    change_due: float


class StatusResponse(BaseModel):
    status: str = "ok"
