"""Coupon aggregate — percentage discounts with usage accounting.

A coupon can be redeemed while it is active, unexpired and under its usage
limit, once per user. Expiry is noticed lazily: nothing deactivates a coupon
at its expiration date, the first read afterwards does (see
``deactivate_if_expired``).
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from commerce.coupon.events import CouponCreated, CouponDeactivated, CouponRedeemed
from commerce.domain import commerce
from commerce.errors import (
    CouponExhausted,
    CouponExpired,
    CouponNotFound,
    LimitExceeded,
    PreconditionFailed,
)
from commerce.utils.clock import as_utc


def normalize_code(code):
    return (code or "").strip().upper()


@commerce.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    description = String(max_length=500)
    discount_percentage = Float(required=True, min_value=0.0, max_value=100.0)
    expiration_date = DateTime()
    usage_limit = Integer(default=1, min_value=0)
    used_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    min_order_value = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)
    used_by = Text()  # JSON: list of user ids that redeemed the coupon
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def used_count_cannot_exceed_usage_limit(self):
        if self.used_count is not None and self.usage_limit is not None:
            if self.used_count > self.usage_limit:
                raise ValidationError({"used_count": ["Coupon used more times than its usage limit"]})

    @classmethod
    def create(
        cls,
        code,
        discount_percentage,
        usage_limit=1,
        expiration_date=None,
        min_order_value=0.0,
        max_discount_amount=None,
        description=None,
    ):
        code = normalize_code(code)
        if not code:
            raise ValidationError({"code": ["Coupon code is required"]})

        now = datetime.now(UTC)
        coupon = cls(
            code=code,
            description=description,
            discount_percentage=discount_percentage,
            expiration_date=as_utc(expiration_date),
            usage_limit=usage_limit,
            used_count=0,
            is_active=True,
            min_order_value=min_order_value or 0.0,
            max_discount_amount=max_discount_amount,
            used_by=json.dumps([]),
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_percentage=coupon.discount_percentage,
                usage_limit=coupon.usage_limit,
                expiration_date=coupon.expiration_date,
                created_at=now,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def redeemed_by(self):
        return json.loads(self.used_by) if self.used_by else []

    def is_expired(self, now=None):
        if self.expiration_date is None:
            return False
        now = now or datetime.now(UTC)
        return as_utc(now) > as_utc(self.expiration_date)

    def is_exhausted(self):
        return self.used_count >= self.usage_limit

    def discount_for(self, order_total):
        discount = order_total * self.discount_percentage / 100
        if self.max_discount_amount is not None:
            discount = min(discount, self.max_discount_amount)
        return round(discount, 2)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def redeem(self, order_total, user_id, order_id=None, now=None):
        """Count one use of the coupon against an order; return the discount."""
        if not self.is_active:
            raise CouponNotFound("Invalid or inactive coupon", code=self.code)
        if self.is_expired(now):
            raise CouponExpired("Coupon has expired", code=self.code)
        if self.is_exhausted():
            raise CouponExhausted("Coupon usage limit reached", code=self.code)
        if order_total < self.min_order_value:
            raise LimitExceeded(
                f"Minimum order value of {self.min_order_value:g} required",
                code=self.code,
                order_total=order_total,
            )
        redeemed_by = self.redeemed_by
        if str(user_id) in redeemed_by:
            raise PreconditionFailed("You have already used this coupon", code=self.code)

        discount = self.discount_for(order_total)
        redeemed_by.append(str(user_id))
        self.used_count += 1
        self.used_by = json.dumps(redeemed_by)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                user_id=str(user_id),
                order_id=str(order_id) if order_id else None,
                discount=discount,
                used_count=self.used_count,
                redeemed_at=self.updated_at,
            )
        )
        return discount

    def deactivate(self, reason="Deactivated by admin"):
        if not self.is_active:
            raise PreconditionFailed("Coupon is already inactive", code=self.code)
        self._deactivate(reason)

    def deactivate_if_expired(self, referenced_by_pending_order=False, now=None):
        """Flag an expired coupon inactive, unless a pending order still uses it.

        Returns True when the coupon was deactivated.
        """
        if not self.is_active or not self.is_expired(now) or referenced_by_pending_order:
            return False
        self._deactivate("Expired")
        return True

    def _deactivate(self, reason):
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CouponDeactivated(
                coupon_id=str(self.id),
                code=self.code,
                reason=reason,
                deactivated_at=self.updated_at,
            )
        )
