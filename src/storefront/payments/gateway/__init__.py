"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- RazorpayGateway when RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are set
"""

import os

from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway.

    Defaults to RazorpayGateway when credentials are present in the
    environment, FakeGateway otherwise.
    """
    global _current_gateway
    if _current_gateway is None:
        key_id = os.getenv("RAZORPAY_KEY_ID")
        key_secret = os.getenv("RAZORPAY_KEY_SECRET")
        if key_id and key_secret:
            from storefront.payments.gateway.razorpay_adapter import RazorpayGateway

            _current_gateway = RazorpayGateway(key_id=key_id, key_secret=key_secret)
        else:
            _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
