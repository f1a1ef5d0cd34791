"""Configurable fake payment gateway for development and testing.

Simulates the gateway without external calls. It can be told at runtime to
succeed or fail, and it records every call so tests can assert on them.
Signatures are computed the same way the real gateway does, using a fixed
test secret.
"""

import hashlib
import hmac
from uuid import uuid4

from storefront.payments.gateway.port import GatewayOrder, PaymentGateway, RefundResult

TEST_KEY_SECRET = "test-key-secret"


def sign(order_ref: str, payment_ref: str, secret: str = TEST_KEY_SECRET) -> str:
    """HMAC-SHA256 of ``order_ref|payment_ref``, hex encoded."""
    body = f"{order_ref}|{payment_ref}".encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(
        self,
        amount_minor_units: int,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        self.calls.append(
            {
                "method": "create_order",
                "amount_minor_units": amount_minor_units,
                "receipt": receipt,
                "notes": notes or {},
            }
        )

        if self.should_succeed:
            return GatewayOrder(
                success=True,
                order_ref=f"order_fake_{uuid4().hex[:14]}",
                amount_minor_units=amount_minor_units,
            )
        return GatewayOrder(success=False, failure_reason=self.failure_reason)

    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        self.calls.append(
            {
                "method": "verify_signature",
                "order_ref": order_ref,
                "payment_ref": payment_ref,
            }
        )
        return hmac.compare_digest(sign(order_ref, payment_ref), signature or "")

    def initiate_refund(self, payment_ref: str, amount: float) -> RefundResult:
        self.calls.append(
            {
                "method": "initiate_refund",
                "payment_ref": payment_ref,
                "amount": amount,
            }
        )

        if self.should_succeed:
            return RefundResult(
                success=True,
                gateway_refund_id=f"rfnd_fake_{uuid4().hex[:14]}",
                gateway_status="processed",
            )
        return RefundResult(success=False, gateway_status="failed", failure_reason=self.failure_reason)
