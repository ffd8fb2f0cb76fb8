from commerce.coupon.coupon import Coupon, normalize_code
from commerce.domain import commerce
from commerce.errors import CouponNotFound


@commerce.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code) -> Coupon | None:
        results = self._dao.query.filter(code=normalize_code(code)).all().items
        return results[0] if results else None

    def get_by_code(self, code) -> Coupon:
        coupon = self.find_by_code(code)
        if coupon is None:
            raise CouponNotFound("Invalid or inactive coupon", code=normalize_code(code))
        return coupon

    def active_coupons(self) -> list:
        return self._dao.query.filter(is_active=True).all().items
