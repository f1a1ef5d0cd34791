"""FastAPI routes for business configuration."""

from dataclasses import asdict

from fastapi import APIRouter
from protean.utils.globals import current_domain

from storefront.configuration import settings
from storefront.configuration.api.schemas import (
    BulkOrderSettingsSchema,
    ConfigKeyResponse,
    LoyaltySettingsSchema,
    SetConfigValueRequest,
    UpdateLoyaltySettingsRequest,
)
from storefront.configuration.config import SetConfigValue

config_router = APIRouter(prefix="/config", tags=["configuration"])

_LOYALTY_KEYS = {
    "points_per_rupee": settings.LOYALTY_POINTS_PER_RUPEE,
    "min_redeemable_points": settings.LOYALTY_MIN_REDEEMABLE_POINTS,
    "point_value_in_rupees": settings.LOYALTY_POINT_VALUE_IN_RUPEES,
    "silver_tier_threshold": settings.LOYALTY_SILVER_TIER_THRESHOLD,
    "gold_tier_threshold": settings.LOYALTY_GOLD_TIER_THRESHOLD,
}


@config_router.get("/loyalty", response_model=LoyaltySettingsSchema)
async def get_loyalty_settings() -> LoyaltySettingsSchema:
    return LoyaltySettingsSchema(**asdict(settings.LoyaltySettings.load()))


@config_router.put("/loyalty", response_model=LoyaltySettingsSchema)
async def update_loyalty_settings(body: UpdateLoyaltySettingsRequest) -> LoyaltySettingsSchema:
    for field, value in body.model_dump(exclude_none=True).items():
        current_domain.process(SetConfigValue(key=_LOYALTY_KEYS[field], value=str(value)), asynchronous=False)
    return LoyaltySettingsSchema(**asdict(settings.LoyaltySettings.load()))


@config_router.get("/bulk-orders", response_model=BulkOrderSettingsSchema)
async def get_bulk_order_settings() -> BulkOrderSettingsSchema:
    return BulkOrderSettingsSchema(**asdict(settings.BulkOrderSettings.load()))


@config_router.put("/{key}", response_model=ConfigKeyResponse)
async def set_config_value(key: str, body: SetConfigValueRequest) -> ConfigKeyResponse:
    command = SetConfigValue(key=key, value=body.value, description=body.description)
    result = current_domain.process(command, asynchronous=False)
    return ConfigKeyResponse(key=result)
