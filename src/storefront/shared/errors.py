"""Error taxonomy for the fulfillment core.

Precondition failures extend Protean's ValidationError so they carry the same
``messages`` dict (field name -> list of messages) as every other domain
validation failure, and are raised before any aggregate is mutated.
"""

from protean.exceptions import ValidationError


class InsufficientStock(ValidationError):
    """A reservation, transfer or legacy stock decrement cannot be satisfied."""


class InsufficientBalance(ValidationError):
    """Points requested exceed the loyalty balance."""


class BelowMinimum(ValidationError):
    """Points requested are below the configured redeemable minimum."""


class InvalidTransition(ValidationError):
    """An out-of-order order, payment, bulk or refund state change."""


class LoyaltyConfigurationError(ValidationError):
    """Loyalty settings make the requested operation impossible."""


class GatewayFailure(Exception):
    """The external payment gateway rejected or failed a call."""

    def __init__(self, reason: str, status_code: int | None = None, response_data: dict | None = None):
        self.reason = reason
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(reason)
