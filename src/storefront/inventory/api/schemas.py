"""Pydantic request/response schemas for the Inventory API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class LineItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Product Request Schemas
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str
    price: float = Field(ge=0)
    stock: int = Field(ge=0, default=0)
    is_available: bool = True


class SetProductStockRequest(BaseModel):
    stock: int = Field(ge=0)


class SetProductAvailabilityRequest(BaseModel):
    is_available: bool


# ---------------------------------------------------------------------------
# Warehouse Request Schemas
# ---------------------------------------------------------------------------
class RegisterWarehouseRequest(BaseModel):
    name: str
    pincode: str
    city: str | None = None
    zone: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Bengaluru Central",
                    "pincode": "560001",
                    "city": "Bengaluru",
                    "zone": "South",
                }
            ]
        }
    }


class SetStockRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=0)
    reserved_quantity: int | None = Field(default=None, ge=0)


class ReserveStockRequest(BaseModel):
    items: list[LineItemSchema] = Field(min_length=1)
    reference: str | None = None
    ttl_minutes: int = Field(default=15, ge=1)


class ConfirmStockRequest(BaseModel):
    items: list[LineItemSchema] = Field(min_length=1)
    hold_id: str | None = None
    reference: str | None = None


class ReleaseStockRequest(BaseModel):
    items: list[LineItemSchema] = Field(min_length=1)
    hold_id: str | None = None
    reference: str | None = None
    reason: str | None = None


class TransferStockRequest(BaseModel):
    from_warehouse_id: str
    to_warehouse_id: str
    product_id: str
    quantity: int = Field(ge=1)


class ReleaseExpiredHoldsRequest(BaseModel):
    as_of: datetime | None = None


class AvailabilityRequest(BaseModel):
    items: list[LineItemSchema] = Field(min_length=1)
    pincode: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class ProductIdResponse(BaseModel):
    product_id: str


class WarehouseIdResponse(BaseModel):
    warehouse_id: str


class HoldIdResponse(BaseModel):
    hold_id: str


class ReleasedHoldsResponse(BaseModel):
    released: int


class StockLevelResponse(BaseModel):
    warehouse_id: str
    warehouse_name: str
    pincode: str
    is_active: bool
    product_id: str
    quantity: int
    reserved_quantity: int
    available: int


class ProductAvailabilityResponse(BaseModel):
    available: int
    required: int
    sufficient: bool


class AvailabilityResponse(BaseModel):
    warehouse_id: str | None = None
    products: dict[str, ProductAvailabilityResponse]


class StatusResponse(BaseModel):
    status: str = "ok"
