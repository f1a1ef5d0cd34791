"""Read-side view of a customer's loyalty standing."""

from storefront.configuration.settings import LoyaltySettings
from storefront.loyalty.account import account_for


def loyalty_summary(user_id, limit=10):
    """Balance, tier and the most recent transactions, newest first."""
    account = account_for(user_id)
    settings = LoyaltySettings.load()
    transactions = sorted(account.transactions or [], key=lambda t: t.created_at, reverse=True)[:limit]
    return {
        "user_id": str(user_id),
        "points_balance": account.points_balance or 0,
        "loyalty_tier": account.loyalty_tier,
        "lifetime_earned": account.lifetime_earned,
        "min_redeemable_points": settings.min_redeemable_points,
        "point_value_in_rupees": settings.point_value_in_rupees,
        "transactions": [
            {
                "id": str(t.id),
                "order_id": str(t.order_id) if t.order_id else None,
                "type": t.type,
                "points": t.points,
                "description": t.description,
                "created_at": t.created_at.isoformat(),
            }
            for t in transactions
        ],
    }
