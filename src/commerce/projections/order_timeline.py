"""Order timeline — append-only audit trail of everything that happened to an order."""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
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
from commerce.order.order import Order


@commerce.projection
class OrderTimeline:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    event_type = String(required=True)
    description = String(required=True)
    occurred_at = DateTime(required=True)


def _add_entry(order_id, event_type, description, occurred_at):
    current_domain.repository_for(OrderTimeline).add(
        OrderTimeline(
            entry_id=str(uuid.uuid4()),
            order_id=order_id,
            event_type=event_type,
            description=description,
            occurred_at=occurred_at,
        )
    )


@commerce.projector(projector_for=OrderTimeline, aggregates=[Order])
class OrderTimelineProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        _add_entry(
            event.order_id,
            "OrderPlaced",
            f"Order {event.order_number} placed ({event.payment_method}, {event.net_amount})",
            event.placed_at,
        )

    @on(OrderItemCancelled)
    def on_item_cancelled(self, event):
        _add_entry(event.order_id, "OrderItemCancelled", f"Item {event.product_id} cancelled", event.cancelled_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        _add_entry(
            event.order_id,
            "OrderCancelled",
            f"Cancelled by {event.cancelled_by}: {event.reason or 'no reason given'}",
            event.cancelled_at,
        )

    @on(OrderItemDelivered)
    def on_item_delivered(self, event):
        _add_entry(event.order_id, "OrderItemDelivered", f"Item {event.product_id} delivered", event.delivered_at)

    @on(ReturnRequested)
    def on_return_requested(self, event):
        _add_entry(
            event.order_id,
            "ReturnRequested",
            f"Return requested for {event.product_id}: {event.reason}",
            event.requested_at,
        )

    @on(ReturnVerified)
    def on_return_verified(self, event):
        _add_entry(
            event.order_id,
            "ReturnVerified",
            f"Return of {event.product_id} {event.decision}",
            event.verified_at,
        )

    @on(ItemRefunded)
    def on_item_refunded(self, event):
        _add_entry(
            event.order_id,
            "ItemRefunded",
            f"Refunded {event.amount} for {event.product_id} to wallet",
            event.refunded_at,
        )

    @on(OrderStatusUpdated)
    def on_status_updated(self, event):
        _add_entry(
            event.order_id,
            "OrderStatusUpdated",
            f"Status changed from {event.previous_status} to {event.new_status}",
            event.updated_at,
        )

    @on(OrderSoftDeleted)
    def on_order_soft_deleted(self, event):
        _add_entry(event.order_id, "OrderSoftDeleted", "Order deleted by admin", event.deleted_at)

    @on(CouponApplied)
    def on_coupon_applied(self, event):
        _add_entry(
            event.order_id,
            "CouponApplied",
            f"Coupon '{event.coupon_code}' applied (discount {event.discount})",
            event.applied_at,
        )

    @on(CouponRemoved)
    def on_coupon_removed(self, event):
        _add_entry(event.order_id, "CouponRemoved", f"Coupon '{event.coupon_code}' removed", event.removed_at)

    @on(PaymentRecorded)
    def on_payment_recorded(self, event):
        _add_entry(event.order_id, "PaymentRecorded", f"Payment {event.payment_id} received", event.paid_at)

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        _add_entry(event.order_id, "PaymentFailed", f"Payment failed: {event.reason}", event.failed_at)


def timeline_for(order_id) -> list:
    entries = current_domain.repository_for(OrderTimeline)._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(entries, key=lambda entry: entry.occurred_at)
