"""Applying and removing a coupon on a pending order."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.coupon.coupon import Coupon
from commerce.domain import commerce
from commerce.order.order import Order


@commerce.command(part_of="Order")
class ApplyCoupon:
    order_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@commerce.command(part_of="Order")
class RemoveCoupon:
    order_id = Identifier(required=True)


@commerce.command_handler(part_of=Order)
class OrderCouponHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        order_repo = current_domain.repository_for(Order)
        coupon_repo = current_domain.repository_for(Coupon)

        order = order_repo.get_order(command.order_id)
        coupon = coupon_repo.get_by_code(command.coupon_code)

        discount = coupon.redeem(order.total, order.user_id, order_id=order.id)
        order.apply_coupon(coupon.code, discount)

        coupon_repo.add(coupon)
        order_repo.add(order)
        return discount

    @handle(RemoveCoupon)
    def remove_coupon(self, command):
        # Usage already counted against the coupon stays counted
        repo = current_domain.repository_for(Order)
        order = repo.get_order(command.order_id)
        order.remove_coupon()
        repo.add(order)
