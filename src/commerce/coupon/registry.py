"""Coupon administration — commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String
from protean.utils.globals import current_domain

from commerce.coupon.coupon import Coupon, normalize_code
from commerce.domain import commerce, logger
from commerce.order.order import Order


@commerce.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    description = String(max_length=500)
    discount_percentage = Float(required=True, min_value=0.0, max_value=100.0)
    usage_limit = Integer(default=1, min_value=1)
    expiration_date = DateTime()
    min_order_value = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)


@commerce.command(part_of="Coupon")
class DeactivateCoupon:
    code = String(required=True, max_length=50)


@commerce.command(part_of="Coupon")
class DeactivateIfExpired:
    code = String(required=True, max_length=50)


@commerce.command_handler(part_of=Coupon)
class CouponRegistryHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": [f"Coupon {normalize_code(command.code)} already exists"]})

        coupon = Coupon.create(
            code=command.code,
            description=command.description,
            discount_percentage=command.discount_percentage,
            usage_limit=command.usage_limit,
            expiration_date=command.expiration_date,
            min_order_value=command.min_order_value,
            max_discount_amount=command.max_discount_amount,
        )
        repo.add(coupon)
        return coupon.code

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get_by_code(command.code)
        coupon.deactivate()
        repo.add(coupon)

    @handle(DeactivateIfExpired)
    def deactivate_if_expired(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get_by_code(command.code)
        if not coupon.is_active or not coupon.is_expired():
            return False

        in_use = current_domain.repository_for(Order).has_pending_order_with_coupon(coupon.code)
        if coupon.deactivate_if_expired(referenced_by_pending_order=in_use):
            repo.add(coupon)
            logger.info("coupon.expired", code=coupon.code)
            return True
        return False

