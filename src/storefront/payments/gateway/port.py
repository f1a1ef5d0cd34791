"""Payment gateway port (abstract interface).

Defines the contract every payment gateway adapter implements, so checkout
and refund handling work unchanged against FakeGateway in development and
tests and RazorpayGateway in production.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GatewayOrder:
    """Result of registering an order with the gateway."""

    success: bool
    order_ref: str | None = None
    amount_minor_units: int = 0
    currency: str = "INR"
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_order(
        self,
        amount_minor_units: int,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        """Register a payable order; amounts are in paise."""
        ...

    @abstractmethod
    def verify_signature(
        self,
        order_ref: str,
        payment_ref: str,
        signature: str,
    ) -> bool:
        """Check the signature the client got back from the gateway checkout."""
        ...

    @abstractmethod
    def initiate_refund(
        self,
        payment_ref: str,
        amount: float,
    ) -> RefundResult:
        """Refund ``amount`` rupees of a captured payment."""
        ...
