"""Returns — the customer's request and the admin's verification.

Requesting a return moves no money. The refund is issued once, when an
admin approves the return.
"""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce, logger
from commerce.order.order import Order
from commerce.order.settlement import Settlement


@commerce.command(part_of="Order")
class RequestReturn:
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@commerce.command(part_of="Order")
class VerifyReturn:
    admin_id = Identifier(required=True)
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    approved = Boolean(required=True)


@commerce.command_handler(part_of=Order)
class ReturnsHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_user(command.order_id, command.user_id)
        order.request_return(command.product_id, command.reason)
        repo.add(order)

    @handle(VerifyReturn)
    def verify_return(self, command):
        order = current_domain.repository_for(Order).get_order(command.order_id)
        item = order.verify_return(command.product_id, command.approved)

        settlement = Settlement(order)
        refunded = 0.0
        if command.approved:
            refunded = settlement.refund(item, f"Refund for returned product in Order {order.order_number}")
        settlement.persist()

        logger.info(
            "order.return_verified",
            order_id=str(order.id),
            product_id=str(command.product_id),
            decision=item.return_decision,
            admin_id=str(command.admin_id),
            refunded=refunded,
        )
