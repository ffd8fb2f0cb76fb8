from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Coupon")
class CouponCreated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_percentage = Float(required=True)
    usage_limit = Integer(required=True)
    expiration_date = DateTime()
    created_at = DateTime(required=True)


@commerce.event(part_of="Coupon")
class CouponRedeemed:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier()
    discount = Float(required=True)
    used_count = Integer(required=True)
    redeemed_at = DateTime(required=True)


@commerce.event(part_of="Coupon")
class CouponDeactivated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    reason = String(required=True)
    deactivated_at = DateTime(required=True)
