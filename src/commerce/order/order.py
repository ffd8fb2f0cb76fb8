"""Order aggregate (CQRS) — a customer's purchase and the state of each line.

Every line item moves through its own small state machine:

    ordered → cancelled            (terminal)
    ordered → delivered → returned (terminal)

The order-level ``status`` is never set piecemeal by lifecycle operations; it
is recomputed from the item statuses by ``derive_order_status``. Only the
admin status update writes it directly (``override_status``).

Money on the order is fixed at placement, except for the coupon discount:

    total      == Σ items.total
    net_amount == total + shipping_charge − discount
"""

import json
import random
import time
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from commerce import config
from commerce.domain import commerce
from commerce.errors import LimitExceeded, OrderItemNotFound, PreconditionFailed
from commerce.order.events import (
    CouponApplied,
    CouponRemoved,
    ItemRefunded,
    OrderCancelled,
    OrderItemCancelled,
    OrderItemDelivered,
    OrderPlaced,
    OrderSoftDeleted,
    OrderStatusUpdated,
    PaymentFailed,
    PaymentRecorded,
    ReturnRequested,
    ReturnVerified,
)
from commerce.utils.clock import as_utc


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "OutForDelivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"


class ItemStatus(Enum):
    ORDERED = "ordered"
    CANCELLED = "cancelled"
    DELIVERED = "delivered"
    RETURNED = "returned"


class PaymentMethod(Enum):
    COD = "COD"
    ONLINE = "ONLINE"
    WALLET = "WALLET"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"


class ReturnDecision(Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


# States in which the order still has work in flight
_OPEN_STATES = {
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
}

# Statuses an admin may move an order to
_ADMIN_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.SHIPPED,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.SHIPPED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

_NOT_CUSTOMER_CANCELLABLE = {
    OrderStatus.CANCELLED,
    OrderStatus.DELIVERED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.RETURNED,
}

_NOT_DELETABLE = {OrderStatus.DELIVERED, OrderStatus.OUT_FOR_DELIVERY}

_REFUNDABLE_METHODS = {PaymentMethod.ONLINE.value, PaymentMethod.WALLET.value}


def derive_order_status(items, fallback=OrderStatus.PENDING):
    """Order status implied by the statuses of its items.

    - every item cancelled                    → Cancelled
    - some item still ordered                 → ``fallback``
    - every live item returned                → Returned
    - otherwise (delivered, maybe returned)   → Delivered

    Cancelled items are ignored once at least one item is live.
    """
    statuses = [ItemStatus(item.status) for item in items]
    live = [status for status in statuses if status != ItemStatus.CANCELLED]

    if not live:
        return OrderStatus.CANCELLED
    if ItemStatus.ORDERED in live:
        return fallback
    if all(status == ItemStatus.RETURNED for status in live):
        return OrderStatus.RETURNED
    return OrderStatus.DELIVERED


def generate_order_number():
    return f"{config.ORDER_NUMBER_PREFIX}{int(time.time() * 1000)}{random.randint(0, 999)}"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderItem:
    """One product line of an order, priced at the moment of placement."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    status = String(choices=ItemStatus, default=ItemStatus.ORDERED.value)
    cancel_reason = String(max_length=500)
    return_reason = String(max_length=500)
    return_verified = Boolean(default=False)
    return_decision = String(choices=ReturnDecision)
    refund_processed = Boolean(default=False)
    delivered_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    user_id = Identifier(required=True)
    address_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_id = String(max_length=255)
    items = HasMany(OrderItem)
    total = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    shipping_charge = Float(default=0.0, min_value=0.0)
    net_amount = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=50)
    is_deleted = Boolean(default=False)
    deleted_at = DateTime()
    placed_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_is_sum_of_item_totals(self):
        if not self.items:
            return
        expected = round(sum(item.total for item in self.items), 2)
        if abs((self.total or 0.0) - expected) > 0.005:
            raise ValidationError({"total": ["Order total must equal the sum of its item totals"]})

    @invariant.post
    def net_amount_matches_price_breakdown(self):
        expected = round((self.total or 0.0) + (self.shipping_charge or 0.0) - (self.discount or 0.0), 2)
        if abs((self.net_amount or 0.0) - expected) > 0.005:
            raise ValidationError({"net_amount": ["Net amount must equal total plus shipping minus discount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, user_id, address_id, payment_method, lines, shipping_charge=0.0):
        """Build a new order from priced lines.

        ``lines`` is a list of dicts with ``product_id``, ``quantity`` and the
        unit ``price`` snapshotted from the stock ledger.
        """
        items = [
            OrderItem(
                product_id=line["product_id"],
                quantity=line["quantity"],
                price=line["price"],
                total=round(line["price"] * line["quantity"], 2),
            )
            for line in lines
        ]
        total = round(sum(item.total for item in items), 2)
        shipping_charge = round(shipping_charge, 2)
        payment_status = (
            PaymentStatus.PENDING.value
            if payment_method == PaymentMethod.ONLINE.value
            else PaymentStatus.PAID.value
        )

        now = datetime.now(UTC)
        order = cls(
            order_number=generate_order_number(),
            user_id=user_id,
            address_id=address_id,
            status=OrderStatus.PENDING.value,
            payment_method=payment_method,
            payment_status=payment_status,
            items=items,
            total=total,
            discount=0.0,
            shipping_charge=shipping_charge,
            net_amount=round(total + shipping_charge, 2),
            placed_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=str(user_id),
                payment_method=payment_method,
                payment_status=payment_status,
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "quantity": item.quantity,
                            "price": item.price,
                            "total": item.total,
                        }
                        for item in items
                    ]
                ),
                total=order.total,
                shipping_charge=order.shipping_charge,
                net_amount=order.net_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def item_for(self, product_id):
        for item in self.items:
            if str(item.product_id) == str(product_id):
                return item
        raise OrderItemNotFound(
            "Product not found in order",
            order_id=str(self.id),
            product_id=str(product_id),
        )

    def open_items(self):
        return [item for item in self.items if item.status == ItemStatus.ORDERED.value]

    def is_refund_eligible(self, item):
        return (
            self.payment_status == PaymentStatus.PAID.value
            and self.payment_method in _REFUNDABLE_METHODS
            and not item.refund_processed
        )

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def assert_within_cancellation_window(self, now=None):
        now = as_utc(now) or datetime.now(UTC)
        deadline = as_utc(self.placed_at) + timedelta(hours=config.CANCELLATION_WINDOW_HOURS)
        if now > deadline:
            raise PreconditionFailed(
                f"Orders can only be cancelled within {config.CANCELLATION_WINDOW_HOURS} hours of placement",
                order_id=str(self.id),
            )

    def assert_cancellable(self):
        if OrderStatus(self.status) in _NOT_CUSTOMER_CANCELLABLE:
            raise PreconditionFailed(
                f"Cannot cancel an order that is {self.status}",
                order_id=str(self.id),
                status=self.status,
            )

    def assert_status_transition(self, new_status):
        current = OrderStatus(self.status)
        target = OrderStatus(new_status)
        if current == OrderStatus.CANCELLED:
            raise PreconditionFailed("Cancelled orders can't be updated", order_id=str(self.id))
        if target not in _ADMIN_TRANSITIONS[current]:
            raise PreconditionFailed(
                f"Cannot change order status from {current.value} to {target.value}",
                order_id=str(self.id),
            )
        if target == OrderStatus.CANCELLED and any(
            item.status in (ItemStatus.DELIVERED.value, ItemStatus.RETURNED.value) for item in self.items
        ):
            raise PreconditionFailed(
                "Cannot cancel an order with delivered items; handle them as returns",
                order_id=str(self.id),
            )

    def assert_deletable(self):
        if OrderStatus(self.status) in _NOT_DELETABLE:
            raise PreconditionFailed(
                f"Cannot delete an order that is {self.status}",
                order_id=str(self.id),
                status=self.status,
            )

    # -------------------------------------------------------------------
    # Item lifecycle
    # -------------------------------------------------------------------
    def cancel_item(self, product_id, reason=None):
        """Move one ordered item to cancelled. Stock and money are the caller's job."""
        item = self.item_for(product_id)
        if item.status != ItemStatus.ORDERED.value:
            raise PreconditionFailed(
                f"Item cannot be cancelled once {item.status}",
                order_id=str(self.id),
                product_id=str(product_id),
            )

        item.status = ItemStatus.CANCELLED.value
        item.cancel_reason = reason
        self._refresh_status()

        self.raise_(
            OrderItemCancelled(
                order_id=str(self.id),
                product_id=str(item.product_id),
                quantity=item.quantity,
                reason=reason,
                order_status=self.status,
                cancelled_at=self.updated_at,
            )
        )
        return item

    def record_cancellation(self, reason, cancelled_by):
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=datetime.now(UTC),
            )
        )

    def mark_item_delivered(self, product_id, now=None):
        if self.status == OrderStatus.CANCELLED.value:
            raise PreconditionFailed("Cannot deliver items of a cancelled order", order_id=str(self.id))

        item = self.item_for(product_id)
        if item.status == ItemStatus.DELIVERED.value:
            raise PreconditionFailed("Item already delivered", order_id=str(self.id), product_id=str(product_id))
        if item.status != ItemStatus.ORDERED.value:
            raise PreconditionFailed(
                f"Cannot deliver an item that is {item.status}",
                order_id=str(self.id),
                product_id=str(product_id),
            )

        item.status = ItemStatus.DELIVERED.value
        item.delivered_at = now or datetime.now(UTC)
        self._refresh_status()

        self.raise_(
            OrderItemDelivered(
                order_id=str(self.id),
                product_id=str(item.product_id),
                order_status=self.status,
                delivered_at=item.delivered_at,
            )
        )
        return item

    def request_return(self, product_id, reason, now=None):
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["Return reason is required"]})

        item = self.item_for(product_id)
        if item.status != ItemStatus.DELIVERED.value:
            raise PreconditionFailed(
                "Only delivered products can be returned",
                order_id=str(self.id),
                product_id=str(product_id),
            )

        now = as_utc(now) or datetime.now(UTC)
        if item.delivered_at is not None:
            deadline = as_utc(item.delivered_at) + timedelta(days=config.RETURN_WINDOW_DAYS)
            if now > deadline:
                raise PreconditionFailed(
                    f"Returns are accepted within {config.RETURN_WINDOW_DAYS} days of delivery",
                    order_id=str(self.id),
                    product_id=str(product_id),
                )

        item.status = ItemStatus.RETURNED.value
        item.return_reason = reason.strip()
        item.return_verified = False
        item.return_decision = None
        self._refresh_status()

        self.raise_(
            ReturnRequested(
                order_id=str(self.id),
                product_id=str(item.product_id),
                reason=item.return_reason,
                order_status=self.status,
                requested_at=now,
            )
        )
        return item

    def verify_return(self, product_id, approved):
        item = self.item_for(product_id)
        if item.status != ItemStatus.RETURNED.value:
            raise PreconditionFailed("Item not marked for return", order_id=str(self.id), product_id=str(product_id))
        if item.return_verified:
            raise PreconditionFailed("Return already verified", order_id=str(self.id), product_id=str(product_id))

        item.return_verified = True
        item.return_decision = ReturnDecision.APPROVED.value if approved else ReturnDecision.REJECTED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ReturnVerified(
                order_id=str(self.id),
                product_id=str(item.product_id),
                decision=item.return_decision,
                verified_at=self.updated_at,
            )
        )
        return item

    def mark_item_refunded(self, item):
        """Flag an item as refunded so no later path credits it again."""
        if item.refund_processed:
            raise PreconditionFailed("Item already refunded", order_id=str(self.id), product_id=str(item.product_id))

        item.refund_processed = True
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ItemRefunded(
                order_id=str(self.id),
                product_id=str(item.product_id),
                user_id=str(self.user_id),
                amount=item.total,
                refunded_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def override_status(self, new_status):
        previous = self.status
        self.status = OrderStatus(new_status).value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderStatusUpdated(
                order_id=str(self.id),
                previous_status=previous,
                new_status=self.status,
                updated_at=self.updated_at,
            )
        )

    def soft_delete(self):
        now = datetime.now(UTC)
        self.is_deleted = True
        self.deleted_at = now
        self.updated_at = now

        self.raise_(OrderSoftDeleted(order_id=str(self.id), deleted_at=now))

    # -------------------------------------------------------------------
    # Coupon
    # -------------------------------------------------------------------
    def apply_coupon(self, code, discount):
        if self.status != OrderStatus.PENDING.value:
            raise PreconditionFailed("Coupons can only be applied to pending orders", order_id=str(self.id))
        if self.coupon_code == code:
            raise PreconditionFailed("Coupon already applied to this order", order_id=str(self.id))
        if self.coupon_code:
            raise PreconditionFailed("Remove the applied coupon before applying another", order_id=str(self.id))

        discount = round(discount, 2)
        net_amount = round(self.total + self.shipping_charge - discount, 2)
        if net_amount < 0:
            raise LimitExceeded("Discount cannot exceed the order amount", order_id=str(self.id))

        with atomic_change(self):
            self.discount = discount
            self.net_amount = net_amount
            self.coupon_code = code
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CouponApplied(
                order_id=str(self.id),
                coupon_code=code,
                discount=discount,
                net_amount=net_amount,
                applied_at=self.updated_at,
            )
        )

    def remove_coupon(self):
        if not self.coupon_code:
            raise PreconditionFailed("No coupon applied to this order", order_id=str(self.id))
        if self.status != OrderStatus.PENDING.value:
            raise PreconditionFailed("Coupons can only be removed from pending orders", order_id=str(self.id))

        code = self.coupon_code
        with atomic_change(self):
            self.discount = 0.0
            self.net_amount = round(self.total + self.shipping_charge, 2)
            self.coupon_code = None
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CouponRemoved(
                order_id=str(self.id),
                coupon_code=code,
                net_amount=self.net_amount,
                removed_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, payment_id):
        self._assert_awaiting_online_payment()

        self.payment_status = PaymentStatus.PAID.value
        self.payment_id = payment_id
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentRecorded(
                order_id=str(self.id),
                payment_id=payment_id,
                amount=self.net_amount,
                paid_at=self.updated_at,
            )
        )

    def record_payment_failure(self, reason=None):
        """Mark the payment failed. Cancelling the open items is the caller's job."""
        self._assert_awaiting_online_payment()

        self.payment_status = PaymentStatus.FAILED.value
        self.updated_at = datetime.now(UTC)

        self.raise_(PaymentFailed(order_id=str(self.id), reason=reason, failed_at=self.updated_at))

    def _assert_awaiting_online_payment(self):
        if self.payment_method != PaymentMethod.ONLINE.value:
            raise PreconditionFailed("Order is not paid online", order_id=str(self.id))
        if self.payment_status != PaymentStatus.PENDING.value:
            raise PreconditionFailed(
                f"Payment already {self.payment_status.lower()}",
                order_id=str(self.id),
                payment_status=self.payment_status,
            )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _refresh_status(self):
        current = OrderStatus(self.status)
        fallback = current if current in _OPEN_STATES else OrderStatus.PENDING
        self.status = derive_order_status(self.items, fallback).value
        self.updated_at = datetime.now(UTC)
