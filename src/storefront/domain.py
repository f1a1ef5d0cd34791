"""Storefront fulfillment core — stock ledger, orders, loyalty and refunds.

Handles warehouse stock reservations, the order payment/delivery lifecycle,
bulk and point-of-sale orders, the loyalty points ledger, and refund
resolution against captured payments.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

storefront = Domain(name="storefront")
