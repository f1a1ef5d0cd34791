"""Pydantic request/response schemas for the Configuration API."""

from pydantic import BaseModel, Field


class SetConfigValueRequest(BaseModel):
    value: str
    description: str | None = None


class ConfigKeyResponse(BaseModel):
    key: str


class LoyaltySettingsSchema(BaseModel):
    points_per_rupee: float
    min_redeemable_points: int
    point_value_in_rupees: float
    silver_tier_threshold: int
    gold_tier_threshold: int


class UpdateLoyaltySettingsRequest(BaseModel):
    points_per_rupee: float | None = Field(default=None, ge=0)
    min_redeemable_points: int | None = Field(default=None, ge=0)
    point_value_in_rupees: float | None = Field(default=None, gt=0)
    silver_tier_threshold: int | None = Field(default=None, ge=0)
    gold_tier_threshold: int | None = Field(default=None, ge=0)


class BulkOrderSettingsSchema(BaseModel):
    gst_rate: float
