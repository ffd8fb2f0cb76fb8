"""Customer cancellation — single items or the whole order."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce, logger
from commerce.order.order import Order
from commerce.order.settlement import Settlement


@commerce.command(part_of="Order")
class CancelOrderItem:
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command(part_of="Order")
class CancelWholeOrder:
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command_handler(part_of=Order)
class CancellationHandler:
    @handle(CancelOrderItem)
    def cancel_order_item(self, command):
        order = current_domain.repository_for(Order).get_for_user(command.order_id, command.user_id)
        order.assert_within_cancellation_window()

        settlement = Settlement(order)
        settlement.cancel_item(
            command.product_id,
            reason=command.reason,
            refund_description=f"Refund for cancelled item from Order {order.order_number}",
        )
        settlement.persist()

        logger.info("order.item_cancelled", order_id=str(order.id), product_id=str(command.product_id))

    @handle(CancelWholeOrder)
    def cancel_whole_order(self, command):
        order = current_domain.repository_for(Order).get_for_user(command.order_id, command.user_id)
        order.assert_cancellable()
        order.assert_within_cancellation_window()

        settlement = Settlement(order)
        cancelled = settlement.cancel_open_items(
            reason=command.reason,
            refund_description=f"Refund for cancelled Order {order.order_number}",
        )
        order.record_cancellation(command.reason, cancelled_by="Customer")
        settlement.persist()

        logger.info("order.cancelled", order_id=str(order.id), items=len(cancelled))
