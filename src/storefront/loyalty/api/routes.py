"""FastAPI routes for the Loyalty context."""

from fastapi import APIRouter
from protean.utils.globals import current_domain

from storefront.loyalty.api.schemas import LoyaltySummaryResponse, RedeemPointsRequest, RedeemPointsResponse
from storefront.loyalty.redemption import RedeemPoints
from storefront.loyalty.summary import loyalty_summary

loyalty_router = APIRouter(prefix="/loyalty", tags=["loyalty"])


@loyalty_router.get("/{user_id}", response_model=LoyaltySummaryResponse)
async def get_loyalty_summary(user_id: str, limit: int = 10) -> LoyaltySummaryResponse:
    return LoyaltySummaryResponse(**loyalty_summary(user_id, limit=limit))


@loyalty_router.post("/{user_id}/redeem", response_model=RedeemPointsResponse)
def redeem_points(user_id: str, body: RedeemPointsRequest) -> RedeemPointsResponse:
    command = RedeemPoints(user_id=user_id, points=body.points, order_id=body.order_id)
    result = current_domain.process(command, asynchronous=False)
    return RedeemPointsResponse(**result)
