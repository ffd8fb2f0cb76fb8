"""Payment outcome for online orders.

The payment verifier is external; it reports an opaque success (with the
gateway's payment id) or failure for an order awaiting online payment.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce, logger
from commerce.order.order import Order
from commerce.order.settlement import Settlement


@commerce.command(part_of="Order")
class RecordPayment:
    order_id = Identifier(required=True)
    payment_id = String(required=True, max_length=255)


@commerce.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command_handler(part_of=Order)
class PaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.record_payment(command.payment_id)
        repo.add(order)

    @handle(RecordPaymentFailure)
    def record_payment_failure(self, command):
        order = current_domain.repository_for(Order).get_order(command.order_id)
        order.record_payment_failure(command.reason)

        # Nothing was paid, so the cancelled items are restocked but not refunded
        settlement = Settlement(order)
        settlement.cancel_open_items(reason="Payment failed", refund_description=None)
        settlement.persist()

        logger.warning("order.payment_failed", order_id=str(order.id), reason=command.reason)
