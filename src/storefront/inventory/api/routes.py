"""FastAPI routes for the Inventory context — products, warehouses and stock."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from storefront.inventory.allocation import check_global_availability, find_warehouse_with_stock, stock_snapshot
from storefront.inventory.api.schemas import (
    AvailabilityRequest,
    AvailabilityResponse,
    ConfirmStockRequest,
    HoldIdResponse,
    ProductIdResponse,
    RegisterProductRequest,
    RegisterWarehouseRequest,
    ReleasedHoldsResponse,
    ReleaseExpiredHoldsRequest,
    ReleaseStockRequest,
    ReserveStockRequest,
    SetProductAvailabilityRequest,
    SetProductStockRequest,
    SetStockRequest,
    StatusResponse,
    StockLevelResponse,
    TransferStockRequest,
    WarehouseIdResponse,
)
from storefront.inventory.catalog import RegisterProduct, SetProductAvailability, SetProductStock
from storefront.inventory.ledger import ConfirmStock, ReleaseExpiredHolds, ReleaseStock, ReserveStock, TransferStock
from storefront.inventory.management import DeactivateWarehouse, RegisterWarehouse, SetStock
from storefront.shared.lines import parse_lines


def _items_json(items) -> str:
    return json.dumps([item.model_dump() for item in items])


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        name=body.name,
        price=body.price,
        stock=body.stock,
        is_available=body.is_available,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}/stock", response_model=StatusResponse)
def set_product_stock(product_id: str, body: SetProductStockRequest) -> StatusResponse:
    command = SetProductStock(product_id=product_id, stock=body.stock)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/availability", response_model=StatusResponse)
def set_product_availability(product_id: str, body: SetProductAvailabilityRequest) -> StatusResponse:
    command = SetProductAvailability(product_id=product_id, is_available=body.is_available)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Warehouse Router
# ---------------------------------------------------------------------------
warehouse_router = APIRouter(prefix="/warehouses", tags=["warehouses"])


@warehouse_router.post("", status_code=201, response_model=WarehouseIdResponse)
def register_warehouse(body: RegisterWarehouseRequest) -> WarehouseIdResponse:
    command = RegisterWarehouse(
        name=body.name,
        pincode=body.pincode,
        city=body.city,
        zone=body.zone,
    )
    result = current_domain.process(command, asynchronous=False)
    return WarehouseIdResponse(warehouse_id=result)


@warehouse_router.get("/stock", response_model=list[StockLevelResponse])
async def list_stock() -> list[StockLevelResponse]:
    return [StockLevelResponse(**row) for row in stock_snapshot()]


@warehouse_router.post("/transfers", response_model=StatusResponse)
def transfer_stock(body: TransferStockRequest) -> StatusResponse:
    command = TransferStock(
        from_warehouse_id=body.from_warehouse_id,
        to_warehouse_id=body.to_warehouse_id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@warehouse_router.put("/{warehouse_id}/deactivate", response_model=StatusResponse)
def deactivate_warehouse(warehouse_id: str) -> StatusResponse:
    command = DeactivateWarehouse(warehouse_id=warehouse_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@warehouse_router.get("/{warehouse_id}/stock", response_model=list[StockLevelResponse])
async def warehouse_stock(warehouse_id: str) -> list[StockLevelResponse]:
    return [StockLevelResponse(**row) for row in stock_snapshot(warehouse_id)]


@warehouse_router.put("/{warehouse_id}/stock", response_model=StatusResponse)
def set_stock(warehouse_id: str, body: SetStockRequest) -> StatusResponse:
    command = SetStock(
        warehouse_id=warehouse_id,
        product_id=body.product_id,
        quantity=body.quantity,
        reserved_quantity=body.reserved_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@warehouse_router.post("/{warehouse_id}/reserve", status_code=201, response_model=HoldIdResponse)
def reserve_stock(warehouse_id: str, body: ReserveStockRequest) -> HoldIdResponse:
    command = ReserveStock(
        warehouse_id=warehouse_id,
        items=_items_json(body.items),
        reference=body.reference,
        ttl_minutes=body.ttl_minutes,
    )
    result = current_domain.process(command, asynchronous=False)
    return HoldIdResponse(hold_id=result)


@warehouse_router.put("/{warehouse_id}/confirm", response_model=StatusResponse)
def confirm_stock(warehouse_id: str, body: ConfirmStockRequest) -> StatusResponse:
    command = ConfirmStock(
        warehouse_id=warehouse_id,
        items=_items_json(body.items),
        hold_id=body.hold_id,
        reference=body.reference,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@warehouse_router.put("/{warehouse_id}/release", response_model=StatusResponse)
def release_stock(warehouse_id: str, body: ReleaseStockRequest) -> StatusResponse:
    command = ReleaseStock(
        warehouse_id=warehouse_id,
        items=_items_json(body.items),
        hold_id=body.hold_id,
        reference=body.reference,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/inventory", tags=["inventory"])


@maintenance_router.post("/holds/expire", response_model=ReleasedHoldsResponse)
def release_expired_holds(body: ReleaseExpiredHoldsRequest | None = None) -> ReleasedHoldsResponse:
    command = ReleaseExpiredHolds(as_of=body.as_of if body else None)
    result = current_domain.process(command, asynchronous=False)
    return ReleasedHoldsResponse(released=result or 0)


@maintenance_router.post("/availability", response_model=AvailabilityResponse)
async def check_availability(body: AvailabilityRequest) -> AvailabilityResponse:
    lines = parse_lines([item.model_dump() for item in body.items])
    warehouse = find_warehouse_with_stock(lines, body.pincode)
    return AvailabilityResponse(
        warehouse_id=str(warehouse.id) if warehouse is not None else None,
        products=check_global_availability(lines),
    )
