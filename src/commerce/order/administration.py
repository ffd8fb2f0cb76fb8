"""Admin order management — status overrides and soft deletion."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce, logger
from commerce.order.order import Order, OrderStatus
from commerce.order.settlement import Settlement


@commerce.command(part_of="Order")
class UpdateOrderStatus:
    admin_id = Identifier(required=True)
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)


@commerce.command(part_of="Order")
class SoftDeleteOrder:
    admin_id = Identifier(required=True)
    order_id = Identifier(required=True)


@commerce.command_handler(part_of=Order)
class OrderAdministrationHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        order = current_domain.repository_for(Order).get_order(command.order_id)
        order.assert_status_transition(command.status)

        settlement = Settlement(order)
        if command.status == OrderStatus.CANCELLED.value:
            settlement.cancel_open_items(
                reason="Cancelled by admin",
                refund_description=f"Refund for cancelled Order {order.order_number}",
            )
            order.record_cancellation("Cancelled by admin", cancelled_by="Admin")
        elif command.status == OrderStatus.DELIVERED.value:
            for item in order.open_items():
                order.mark_item_delivered(item.product_id)

        order.override_status(command.status)
        settlement.persist()

        logger.info(
            "order.status_updated",
            order_id=str(order.id),
            status=order.status,
            admin_id=str(command.admin_id),
        )

    @handle(SoftDeleteOrder)
    def soft_delete_order(self, command):
        order = current_domain.repository_for(Order).get_order(command.order_id)
        order.assert_deletable()

        settlement = Settlement(order)
        settlement.cancel_open_items(
            reason="Order deleted by admin",
            refund_description=f"Refund for deleted Order {order.order_number}",
        )
        order.soft_delete()
        settlement.persist()

        logger.info("order.soft_deleted", order_id=str(order.id), admin_id=str(command.admin_id))
