"""FastAPI routes for the Ordering context — checkout, lifecycle, bulk and POS.

Routes that process commands are plain functions so FastAPI runs them in its
threadpool; their handlers block on row locks and on payment gateway calls.
"""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from storefront.configuration.settings import BulkOrderSettings
from storefront.ordering.api.schemas import (
    AssignDeliveryPartnerRequest,
    BulkApprovalResponse,
    BulkOrderResponse,
    CheckoutRequest,
    CheckoutResponse,
    OrderItemSchema,
    OrderResponse,
    PlaceBulkOrderRequest,
    PlacePosOrderRequest,
    PosOrderResponse,
    RejectBulkOrderRequest,
    StatusResponse,
    UpdateDeliveryRequest,
    UpdateOrderStatusRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from storefront.ordering.bulk import (
    ApproveBulkOrder,
    GenerateBulkInvoice,
    PlaceBulkOrder,
    RejectBulkOrder,
    build_invoice,
)
from storefront.ordering.checkout import PlaceOrder
from storefront.ordering.fulfillment import AssignDeliveryPartner, UpdateDelivery, UpdateOrderStatus
from storefront.ordering.order import Order
from storefront.ordering.payment import VerifyPayment
from storefront.ordering.pos import PlacePosOrder


def _items_json(items) -> str:
    return json.dumps([item.model_dump() for item in items])


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        total_amount=order.total_amount,
        warehouse_id=str(order.warehouse_id) if order.warehouse_id else None,
        delivery_partner_id=str(order.delivery_partner_id) if order.delivery_partner_id else None,
        points_redeemed=order.points_redeemed or 0,
        points_discount=order.points_discount or 0.0,
        points_earned=order.points_earned or 0,
        is_bulk_order=bool(order.is_bulk_order),
        bulk_order_status=order.bulk_order_status,
        bulk_discount_percent=order.bulk_discount_percent or 0,
        invoice_number=order.invoice_number,
        delivery_notes=order.delivery_notes,
        notes=order.notes,
        items=[
            OrderItemSchema(product_id=str(item.product_id), quantity=item.quantity, price=item.price)
            for item in order.items
        ],
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
def checkout(body: CheckoutRequest) -> CheckoutResponse:
    command = PlaceOrder(
        customer_id=body.customer_id,
        items=_items_json(body.items),
        payment_method=body.payment_method,
        redeem_points=body.redeem_points,
        pincode=body.pincode,
        notes=body.notes,
    )
    result = current_domain.process(command, asynchronous=False)
    return CheckoutResponse(**result)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(current_domain.repository_for(Order).get(order_id))


@order_router.post("/{order_id}/verify-payment", response_model=VerifyPaymentResponse)
def verify_payment(order_id: str, body: VerifyPaymentRequest) -> VerifyPaymentResponse:
    command = VerifyPayment(
        order_id=order_id,
        gateway_order_ref=body.gateway_order_ref,
        gateway_payment_ref=body.gateway_payment_ref,
        signature=body.signature,
    )
    result = current_domain.process(command, asynchronous=False)
    return VerifyPaymentResponse(**result)


@order_router.put("/{order_id}/status", response_model=StatusResponse)
def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        payment_status=body.payment_status,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/delivery-partner", response_model=StatusResponse)
def assign_delivery_partner(order_id: str, body: AssignDeliveryPartnerRequest) -> StatusResponse:
    command = AssignDeliveryPartner(order_id=order_id, delivery_partner_id=body.delivery_partner_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/delivery", response_model=StatusResponse)
def update_delivery(order_id: str, body: UpdateDeliveryRequest) -> StatusResponse:
    command = UpdateDelivery(
        order_id=order_id,
        delivery_partner_id=body.delivery_partner_id,
        status=body.status,
        payment_status=body.payment_status,
        delivery_notes=body.delivery_notes,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Bulk Order Router
# ---------------------------------------------------------------------------
bulk_router = APIRouter(prefix="/bulk-orders", tags=["bulk-orders"])


@bulk_router.post("", status_code=201, response_model=BulkOrderResponse)
def place_bulk_order(body: PlaceBulkOrderRequest) -> BulkOrderResponse:
    command = PlaceBulkOrder(
        customer_id=body.customer_id,
        items=_items_json(body.items),
        bulk_customer_name=body.bulk_customer_name,
        bulk_customer_contact=body.bulk_customer_contact,
        bulk_customer_gst=body.bulk_customer_gst,
        bulk_order_note=body.bulk_order_note,
    )
    result = current_domain.process(command, asynchronous=False)
    return BulkOrderResponse(**result)


@bulk_router.put("/{order_id}/approve", response_model=BulkApprovalResponse)
def approve_bulk_order(order_id: str) -> BulkApprovalResponse:
    result = current_domain.process(ApproveBulkOrder(order_id=order_id), asynchronous=False)
    return BulkApprovalResponse(**result)


@bulk_router.put("/{order_id}/reject", response_model=StatusResponse)
def reject_bulk_order(order_id: str, body: RejectBulkOrderRequest) -> StatusResponse:
    command = RejectBulkOrder(order_id=order_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@bulk_router.get("/{order_id}/invoice")
async def preview_bulk_invoice(order_id: str) -> dict:
    order = current_domain.repository_for(Order).get(order_id)
    return build_invoice(order, BulkOrderSettings.load())


@bulk_router.post("/{order_id}/invoice", status_code=201)
def generate_bulk_invoice(order_id: str) -> dict:
    return current_domain.process(GenerateBulkInvoice(order_id=order_id), asynchronous=False)


# ---------------------------------------------------------------------------
# Point-of-Sale Router
# ---------------------------------------------------------------------------
pos_router = APIRouter(prefix="/pos", tags=["pos"])


@pos_router.post("/orders", status_code=201, response_model=PosOrderResponse)
def place_pos_order(body: PlacePosOrderRequest) -> PosOrderResponse:
    command = PlacePosOrder(
        customer_id=body.customer_id,
        items=_items_json(body.items),
        payment_method=body.payment_method,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        amount_received=body.amount_received,
    )
    result = current_domain.process(command, asynchronous=False)
    return PosOrderResponse(**result)
