"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    payment_method = String(required=True)
    payment_status = String(required=True)
    items = Text(required=True)  # JSON: [{product_id, quantity, price, total}]
    total = Float(required=True)
    shipping_charge = Float(required=True)
    net_amount = Float(required=True)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderItemCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String()
    order_status = String(required=True)
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderItemDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    order_status = String(required=True)
    delivered_at = DateTime(required=True)


@commerce.event(part_of="Order")
class ReturnRequested:
    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    reason = String(required=True)
    order_status = String(required=True)
    requested_at = DateTime(required=True)


@commerce.event(part_of="Order")
class ReturnVerified:
    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    decision = String(required=True)
    verified_at = DateTime(required=True)


@commerce.event(part_of="Order")
class ItemRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStatusUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    updated_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderSoftDeleted:
    __version__ = 1

    order_id = Identifier(required=True)
    deleted_at = DateTime(required=True)


@commerce.event(part_of="Order")
class CouponApplied:
    __version__ = 1

    order_id = Identifier(required=True)
    coupon_code = String(required=True)
    discount = Float(required=True)
    net_amount = Float(required=True)
    applied_at = DateTime(required=True)


@commerce.event(part_of="Order")
class CouponRemoved:
    __version__ = 1

    order_id = Identifier(required=True)
    coupon_code = String(required=True)
    net_amount = Float(required=True)
    removed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = String(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    failed_at = DateTime(required=True)
