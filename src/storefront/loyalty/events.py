"""Domain events for the LoyaltyAccount aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="LoyaltyAccount")
class PointsEarned:
    """Points were credited for a paid order."""

    __version__ = 1

    user_id = Identifier(required=True)
    order_id = Identifier()
    points = Integer(required=True)
    new_balance = Identifier(required=True)  # Stored as string to avoid Integer(0) issue
    earned_at = DateTime(required=True)


@storefront.event(part_of="LoyaltyAccount")
class PointsRedeemed:
    """Points were spent for a discount."""

    __version__ = 1

    user_id = Identifier(required=True)
    order_id = Identifier()
    points = Integer(required=True)
    discount = String(required=True)
    new_balance = Identifier(required=True)
    redeemed_at = DateTime(required=True)


@storefront.event(part_of="LoyaltyAccount")
class LoyaltyTierChanged:
    """Cumulative earnings moved the account into a different tier."""

    __version__ = 1

    user_id = Identifier(required=True)
    previous_tier = String(required=True)
    new_tier = String(required=True)
    changed_at = DateTime(required=True)
