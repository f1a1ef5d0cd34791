"""Pydantic request/response schemas for the Loyalty API."""

from pydantic import BaseModel, Field


class RedeemPointsRequest(BaseModel):
    points: int = Field(ge=1)
    order_id: str | None = None


class RedeemPointsResponse(BaseModel):
    points_redeemed: int
    discount: float
    points_balance: int


class LoyaltyTransactionSchema(BaseModel):
    id: str
    order_id: str | None = None
    type: str
    points: int
    description: str | None = None
    created_at: str


class LoyaltySummaryResponse(BaseModel):
    user_id: str
    points_balance: int
    loyalty_tier: str
    lifetime_earned: int
    min_redeemable_points: int
    point_value_in_rupees: float
    transactions: list[LoyaltyTransactionSchema]
