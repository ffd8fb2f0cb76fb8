from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.order import Order


@commerce.command(part_of="Order")
class MarkItemDelivered:
    admin_id = Identifier(required=True)
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)


@commerce.command_handler(part_of=Order)
class DeliveryHandler:
    @handle(MarkItemDelivered)
    def mark_item_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.mark_item_delivered(command.product_id)
        repo.add(order)
