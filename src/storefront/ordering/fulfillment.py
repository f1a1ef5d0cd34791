"""Order status, delivery partner assignment and delivery updates — commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.order import Actor, Order
from storefront.utils.locks import row_key, row_locks

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    """Administrative status and/or payment update."""

    order_id = Identifier(required=True)
    status = String(max_length=30)
    payment_status = String(max_length=30)


@storefront.command(part_of="Order")
class AssignDeliveryPartner:
    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)


@storefront.command(part_of="Order")
class UpdateDelivery:
    """A delivery partner reporting progress on an order assigned to them."""

    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    status = String(max_length=30)
    payment_status = String(max_length=30)
    delivery_notes = Text()


@storefront.command_handler(part_of=Order)
class OrderFulfillmentHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        if not command.status and not command.payment_status:
            raise ValidationError({"status": ["Nothing to update"]})

        with row_locks(row_key("order", command.order_id)):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            if command.status:
                order.advance_to(command.status, actor=Actor.ADMIN)
            if command.payment_status:
                order.set_payment_status(command.payment_status)
            repo.add(order)

        logger.info(
            "Order updated by admin",
            order_id=str(command.order_id),
            status=order.status,
            payment_status=order.payment_status,
        )

    @handle(AssignDeliveryPartner)
    def assign_delivery_partner(self, command):
        with row_locks(row_key("order", command.order_id)):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            order.assign_delivery_partner(command.delivery_partner_id)
            repo.add(order)

    @handle(UpdateDelivery)
    def update_delivery(self, command):
        if not command.status and not command.payment_status and command.delivery_notes is None:
            raise ValidationError({"status": ["Nothing to update"]})

        with row_locks(row_key("order", command.order_id)):
            repo = current_domain.repository_for(Order)
            order = repo.get(command.order_id)
            order.record_delivery_update(
                partner_id=command.delivery_partner_id,
                status=command.status,
                payment_status=command.payment_status,
                delivery_notes=command.delivery_notes,
            )
            repo.add(order)

        logger.info(
            "Delivery update recorded",
            order_id=str(command.order_id),
            delivery_partner_id=str(command.delivery_partner_id),
            status=order.status,
        )
