"""Standalone points redemption — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.configuration.settings import LoyaltySettings
from storefront.domain import storefront
from storefront.loyalty.account import LoyaltyAccount, account_for
from storefront.utils.locks import row_key, row_locks

logger = structlog.get_logger(__name__)


@storefront.command(part_of="LoyaltyAccount")
class RedeemPoints:
    user_id = Identifier(required=True)
    points = Integer(required=True, min_value=1)
    order_id = Identifier()


@storefront.command_handler(part_of=LoyaltyAccount)
class LoyaltyRedemptionHandler:
    @handle(RedeemPoints)
    def redeem_points(self, command):
        settings = LoyaltySettings.load()
        with row_locks(row_key("loyalty", command.user_id)):
            account = account_for(command.user_id)
            discount = account.redeem(command.points, settings, order_id=command.order_id)
            current_domain.repository_for(LoyaltyAccount).add(account)

        logger.info(
            "Loyalty points redeemed",
            user_id=str(command.user_id),
            points=command.points,
            discount=discount,
        )
        return {
            "points_redeemed": command.points,
            "discount": discount,
            "points_balance": account.points_balance,
        }
