"""ConfigEntry aggregate — named business settings stored as strings.

The entry's identity is its key, so reads are a plain repository lookup.
Keys that feed numeric settings are checked when they are written, so a
stored value always parses.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront

LOYALTY_POINTS_PER_RUPEE = "LOYALTY_POINTS_PER_RUPEE"
LOYALTY_MIN_REDEEMABLE_POINTS = "LOYALTY_MIN_REDEEMABLE_POINTS"
LOYALTY_POINT_VALUE_IN_RUPEES = "LOYALTY_POINT_VALUE_IN_RUPEES"
LOYALTY_SILVER_TIER_THRESHOLD = "LOYALTY_SILVER_TIER_THRESHOLD"
LOYALTY_GOLD_TIER_THRESHOLD = "LOYALTY_GOLD_TIER_THRESHOLD"
BULK_ORDER_GST_RATE = "BULK_ORDER_GST_RATE"

NUMERIC_KEYS = {
    LOYALTY_POINTS_PER_RUPEE: float,
    LOYALTY_MIN_REDEEMABLE_POINTS: int,
    LOYALTY_POINT_VALUE_IN_RUPEES: float,
    LOYALTY_SILVER_TIER_THRESHOLD: int,
    LOYALTY_GOLD_TIER_THRESHOLD: int,
    BULK_ORDER_GST_RATE: float,
}


def parse_numeric(key, raw):
    """Parsed value of a numeric setting; None for blank. Raises ValueError if malformed."""
    if raw is None or str(raw).strip() == "":
        return None
    return NUMERIC_KEYS[key](str(raw).strip())


@storefront.aggregate
class ConfigEntry:
    key = String(identifier=True, max_length=100)
    value = Text(required=True)
    description = String(max_length=255)
    updated_at = DateTime()


@storefront.command(part_of="ConfigEntry")
class SetConfigValue:
    key = String(required=True, max_length=100)
    value = Text(required=True)
    description = String(max_length=255)


@storefront.command_handler(part_of=ConfigEntry)
class ConfigurationHandler:
    @handle(SetConfigValue)
    def set_value(self, command):
        if command.key in NUMERIC_KEYS:
            try:
                parse_numeric(command.key, command.value)
            except ValueError:
                raise ValidationError({command.key: [f"Invalid numeric value: {command.value!r}"]}) from None

        repo = current_domain.repository_for(ConfigEntry)
        now = datetime.now(UTC)
        try:
            entry = repo.get(command.key)
            entry.value = command.value
            if command.description:
                entry.description = command.description
            entry.updated_at = now
        except ObjectNotFoundError:
            entry = ConfigEntry(
                key=command.key,
                value=command.value,
                description=command.description,
                updated_at=now,
            )
        repo.add(entry)
        return command.key


def read_config(key, default=None):
    """Raw string value for ``key``, or ``default`` when it is not set."""
    try:
        return current_domain.repository_for(ConfigEntry).get(key).value
    except ObjectNotFoundError:
        return default
