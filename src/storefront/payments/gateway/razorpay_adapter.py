"""Razorpay payment gateway adapter.

Talks to the Razorpay REST API over httpx with HTTP basic auth
(key id / key secret). Checkout signatures are HMAC-SHA256 over
``order_id|payment_id`` keyed with the key secret.
"""

import hashlib
import hmac

import httpx
import structlog

from storefront.payments.gateway.port import GatewayOrder, PaymentGateway, RefundResult
from storefront.shared.errors import GatewayFailure

logger = structlog.get_logger(__name__)

RAZORPAY_BASE_URL = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):
    """Production gateway adapter for Razorpay."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = RAZORPAY_BASE_URL,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        if not key_id or not key_secret:
            raise ValueError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required")
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url
        self._transport = transport
        self._timeout = timeout

    def _request(self, method: str, endpoint: str, json_data: dict | None = None) -> dict:
        """Make a request to the Razorpay API, raising GatewayFailure on any error."""
        try:
            with httpx.Client(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = client.request(method, endpoint, json=json_data)
        except httpx.HTTPError as exc:
            logger.error("Razorpay request failed", endpoint=endpoint, error=str(exc))
            raise GatewayFailure(f"Gateway unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error = data.get("error") or {}
            reason = error.get("description") or f"Gateway returned HTTP {response.status_code}"
            logger.error(
                "Razorpay API error",
                endpoint=endpoint,
                status_code=response.status_code,
                reason=reason,
            )
            raise GatewayFailure(reason, status_code=response.status_code, response_data=data)

        return data

    def create_order(
        self,
        amount_minor_units: int,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        try:
            data = self._request(
                "POST",
                "/orders",
                {
                    "amount": int(amount_minor_units),
                    "currency": "INR",
                    "receipt": receipt,
                    "notes": notes or {},
                },
            )
        except GatewayFailure as exc:
            return GatewayOrder(success=False, failure_reason=exc.reason)

        return GatewayOrder(
            success=True,
            order_ref=data["id"],
            amount_minor_units=data.get("amount", amount_minor_units),
            currency=data.get("currency", "INR"),
        )

    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        body = f"{order_ref}|{payment_ref}".encode()
        expected = hmac.new(self.key_secret.encode(), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    def initiate_refund(self, payment_ref: str, amount: float) -> RefundResult:
        try:
            data = self._request(
                "POST",
                f"/payments/{payment_ref}/refund",
                {"amount": round(amount * 100)},
            )
        except GatewayFailure as exc:
            return RefundResult(success=False, gateway_status="failed", failure_reason=exc.reason)

        return RefundResult(
            success=True,
            gateway_refund_id=data.get("id"),
            gateway_status=data.get("status"),
        )
