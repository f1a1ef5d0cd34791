"""LoyaltyAccount aggregate (CQRS) — a customer's points balance and ledger.

The account id is the customer's user id. Transactions are append-only;
``points_balance`` is a denormalized counter changed only alongside a new
transaction, so the balance always equals EARN points minus REDEEM points.
Tier is derived from lifetime EARN points.
"""

import math
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.loyalty.events import LoyaltyTierChanged, PointsEarned, PointsRedeemed
from storefront.shared.errors import BelowMinimum, InsufficientBalance


class LoyaltyTier(Enum):
    BASIC = "BASIC"
    SILVER = "SILVER"
    GOLD = "GOLD"


class TransactionType(Enum):
    EARN = "EARN"
    REDEEM = "REDEEM"


def points_for_amount(amount, points_per_rupee):
    return math.floor(Decimal(str(amount)) * Decimal(str(points_per_rupee)))


def tier_for(total_earned, settings):
    if total_earned >= settings.gold_tier_threshold:
        return LoyaltyTier.GOLD.value
    if total_earned >= settings.silver_tier_threshold:
        return LoyaltyTier.SILVER.value
    return LoyaltyTier.BASIC.value


def format_rupees(amount):
    return str(int(amount)) if float(amount).is_integer() else f"{amount:.2f}"


@storefront.entity(part_of="LoyaltyAccount")
class LoyaltyTransaction:
    order_id = Identifier()
    type = String(required=True, choices=TransactionType)
    points = Integer(required=True, min_value=1)
    description = String(max_length=255)
    created_at = DateTime(required=True)


@storefront.aggregate
class LoyaltyAccount:
    points_balance = Integer(default=0, min_value=0)
    loyalty_tier = String(choices=LoyaltyTier, default=LoyaltyTier.BASIC.value)
    transactions = HasMany(LoyaltyTransaction)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def balance_cannot_go_negative(self):
        if (self.points_balance or 0) < 0:
            raise InsufficientBalance({"points_balance": ["Points balance cannot be negative"]})

    @classmethod
    def open(cls, user_id):
        now = datetime.now(UTC)
        return cls(id=str(user_id), created_at=now, updated_at=now)

    @property
    def lifetime_earned(self):
        return sum(t.points for t in (self.transactions or []) if t.type == TransactionType.EARN.value)

    def _append(self, type_, points, description, order_id=None):
        now = datetime.now(UTC)
        self.add_transactions(
            LoyaltyTransaction(
                id=str(uuid4()),
                order_id=order_id,
                type=type_,
                points=points,
                description=description,
                created_at=now,
            )
        )
        self.updated_at = now
        return now

    def earn(self, order_id, order_amount, settings):
        """Credit ``floor(order_amount * points_per_rupee)`` points. Returns the points earned."""
        points = points_for_amount(order_amount, settings.points_per_rupee)
        if points <= 0:
            return 0

        previous_tier = self.loyalty_tier
        new_tier = tier_for(self.lifetime_earned + points, settings)

        with atomic_change(self):
            earned_at = self._append(
                TransactionType.EARN.value, points, f"Earned {points} points for order", order_id
            )
            self.points_balance = self.points_balance + points
            self.loyalty_tier = new_tier

        self.raise_(
            PointsEarned(
                user_id=str(self.id),
                order_id=order_id,
                points=points,
                new_balance=str(self.points_balance),
                earned_at=earned_at,
            )
        )
        if new_tier != previous_tier:
            self.raise_(
                LoyaltyTierChanged(
                    user_id=str(self.id),
                    previous_tier=previous_tier,
                    new_tier=new_tier,
                    changed_at=earned_at,
                )
            )
        return points

    def check_redeemable(self, points, settings):
        """Validate a redemption request without changing anything."""
        settings.assert_redeemable()
        if points < settings.min_redeemable_points:
            raise BelowMinimum({"points": [f"Minimum {settings.min_redeemable_points} points required to redeem"]})
        if points > (self.points_balance or 0):
            raise InsufficientBalance({"points": ["Insufficient points balance"]})

    def redeem(self, points, settings, order_id=None, enforce_minimum=True):
        """Spend ``points`` and return the rupee discount they buy.

        ``enforce_minimum`` is turned off only for checkout, where the
        requested points already passed the minimum and were then capped to
        the order total.
        """
        if enforce_minimum:
            self.check_redeemable(points, settings)
        else:
            settings.assert_redeemable()
            if points > (self.points_balance or 0):
                raise InsufficientBalance({"points": ["Insufficient points balance"]})
        if points <= 0:
            raise ValidationError({"points": ["Points to redeem must be positive"]})

        discount = points * settings.point_value_in_rupees
        with atomic_change(self):
            redeemed_at = self._append(
                TransactionType.REDEEM.value,
                points,
                f"Redeemed {points} points for ₹{format_rupees(discount)} discount",
                order_id,
            )
            self.points_balance = self.points_balance - points

        self.raise_(
            PointsRedeemed(
                user_id=str(self.id),
                order_id=order_id,
                points=points,
                discount=str(discount),
                new_balance=str(self.points_balance),
                redeemed_at=redeemed_at,
            )
        )
        return discount


def cap_redemption(points, total_amount, settings):
    """Points and discount for a checkout redemption, capped at the order total.

    When the naive discount exceeds the total, the discount becomes the total
    and the points are recomputed with ceiling division.
    """
    discount = points * settings.point_value_in_rupees
    if discount > total_amount:
        discount = total_amount
        points = math.ceil(Decimal(str(total_amount)) / Decimal(str(settings.point_value_in_rupees)))
    return points, discount


def account_for(user_id):
    """Load the account for ``user_id``, opening an empty one if none exists yet."""
    try:
        return current_domain.repository_for(LoyaltyAccount).get(str(user_id))
    except ObjectNotFoundError:
        return LoyaltyAccount.open(user_id)
