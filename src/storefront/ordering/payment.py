"""Online payment verification — command and handler.

The client posts back the gateway's order id, payment id and signature. A
valid signature marks the order PAID, moves it to PROCESSING and awards
loyalty points on the amount paid. An invalid one marks the payment FAILED
and cancels the order; that outcome is persisted and reported back rather
than raised, so it is not rolled back with the unit of work.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.configuration.settings import LoyaltySettings
from storefront.domain import storefront
from storefront.loyalty.account import LoyaltyAccount, account_for
from storefront.ordering.order import Order, PaymentMethod
from storefront.payments.gateway import get_gateway
from storefront.utils.locks import row_key, row_locks

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class VerifyPayment:
    order_id = Identifier(required=True)
    gateway_order_ref = String(required=True, max_length=100)
    gateway_payment_ref = String(required=True, max_length=100)
    signature = String(required=True, max_length=255)


@storefront.command_handler(part_of=Order)
class PaymentVerificationHandler:
    @handle(VerifyPayment)
    def verify_payment(self, command):
        repo = current_domain.repository_for(Order)
        customer_id = repo.get(command.order_id).customer_id
        with row_locks(row_key("order", command.order_id), row_key("loyalty", customer_id)):
            order = repo.get(command.order_id)

            if order.payment_method != PaymentMethod.ONLINE.value:
                raise ValidationError({"order_id": ["Only online orders are verified through the gateway"]})
            if order.gateway_order_ref and order.gateway_order_ref != command.gateway_order_ref:
                raise ValidationError({"gateway_order_ref": ["Gateway order does not belong to this order"]})

            valid = get_gateway().verify_signature(
                command.gateway_order_ref,
                command.gateway_payment_ref,
                command.signature,
            )

            if not valid:
                order.fail_payment(reason="Invalid signature")
                repo.add(order)
                logger.warning(
                    "Payment signature rejected",
                    order_id=str(order.id),
                    gateway_order_ref=command.gateway_order_ref,
                )
                return {
                    "verified": False,
                    "order_id": str(order.id),
                    "status": order.status,
                    "payment_status": order.payment_status,
                    "error": "Invalid signature",
                }

            order.confirm_online_payment(command.gateway_payment_ref, command.signature)

            settings = LoyaltySettings.load()
            account = account_for(order.customer_id)
            points_earned = account.earn(str(order.id), order.total_amount, settings)
            order.record_points_earned(points_earned)
            repo.add(order)
            if points_earned:
                current_domain.repository_for(LoyaltyAccount).add(account)

        logger.info(
            "Payment verified",
            order_id=str(order.id),
            gateway_payment_ref=command.gateway_payment_ref,
            points_earned=points_earned,
        )
        return {
            "verified": True,
            "order_id": str(order.id),
            "status": order.status,
            "payment_status": order.payment_status,
            "points_earned": points_earned,
            "points_balance": account.points_balance or 0,
            "loyalty_tier": account.loyalty_tier,
        }
