"""Typed settings snapshots read from the configuration store.

Handlers load a snapshot once per command and pass it into the domain
methods that need it; nothing below caches between commands. A stored value
that does not parse falls back to its default with a warning.
"""

from dataclasses import dataclass

import structlog

from storefront.configuration.config import (
    BULK_ORDER_GST_RATE,
    LOYALTY_GOLD_TIER_THRESHOLD,
    LOYALTY_MIN_REDEEMABLE_POINTS,
    LOYALTY_POINT_VALUE_IN_RUPEES,
    LOYALTY_POINTS_PER_RUPEE,
    LOYALTY_SILVER_TIER_THRESHOLD,
    parse_numeric,
    read_config,
)
from storefront.shared.errors import LoyaltyConfigurationError

logger = structlog.get_logger(__name__)


def _number(key, default):
    raw = read_config(key)
    try:
        value = parse_numeric(key, raw)
    except ValueError:
        logger.warning("Malformed setting ignored", key=key, value=raw, default=default)
        return default
    return default if value is None else value


@dataclass(frozen=True)
class LoyaltySettings:
    points_per_rupee: float = 0.01
    min_redeemable_points: int = 100
    point_value_in_rupees: float = 1.0
    silver_tier_threshold: int = 500
    gold_tier_threshold: int = 2000

    @classmethod
    def load(cls) -> "LoyaltySettings":
        defaults = cls()
        return cls(
            points_per_rupee=_number(LOYALTY_POINTS_PER_RUPEE, defaults.points_per_rupee),
            min_redeemable_points=_number(LOYALTY_MIN_REDEEMABLE_POINTS, defaults.min_redeemable_points),
            point_value_in_rupees=_number(LOYALTY_POINT_VALUE_IN_RUPEES, defaults.point_value_in_rupees),
            silver_tier_threshold=_number(LOYALTY_SILVER_TIER_THRESHOLD, defaults.silver_tier_threshold),
            gold_tier_threshold=_number(LOYALTY_GOLD_TIER_THRESHOLD, defaults.gold_tier_threshold),
        )

    def assert_redeemable(self):
        if self.point_value_in_rupees <= 0:
            raise LoyaltyConfigurationError(
                {"point_value_in_rupees": ["Invalid loyalty point configuration: point value must be positive"]}
            )


@dataclass(frozen=True)
class BulkOrderSettings:
    gst_rate: float = 18.0

    @classmethod
    def load(cls) -> "BulkOrderSettings":
        return cls(gst_rate=_number(BULK_ORDER_GST_RATE, cls().gst_rate))
