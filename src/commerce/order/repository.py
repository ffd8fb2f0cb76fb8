"""Repository for the Order aggregate.

Soft-deleted orders are invisible to every lookup here.
"""

from protean.exceptions import ObjectNotFoundError

from commerce.domain import commerce
from commerce.errors import OrderNotFound
from commerce.order.order import Order, OrderStatus


@commerce.repository(part_of=Order)
class OrderRepository:
    def get_order(self, order_id) -> Order:
        try:
            order = self.get(str(order_id))
        except ObjectNotFoundError as exc:
            raise OrderNotFound("Order not found", order_id=str(order_id)) from exc

        if order.is_deleted:
            raise OrderNotFound("Order not found", order_id=str(order_id))
        return order

    def get_for_user(self, order_id, user_id) -> Order:
        """Load an order on behalf of its owner. Other users' orders read as missing."""
        order = self.get_order(order_id)
        if str(order.user_id) != str(user_id):
            raise OrderNotFound("Order not found", order_id=str(order_id))
        return order

    def orders_for_user(self, user_id) -> list:
        orders = self._dao.query.filter(user_id=str(user_id), is_deleted=False).all().items
        return sorted(orders, key=lambda order: order.placed_at, reverse=True)

    def has_pending_order_with_coupon(self, code) -> bool:
        orders = (
            self._dao.query.filter(
                coupon_code=code,
                status=OrderStatus.PENDING.value,
                is_deleted=False,
            )
            .all()
            .items
        )
        return len(orders) > 0
