"""Tests for the per-item state machine and the admin guards on Order."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from commerce.errors import PreconditionFailed
from commerce.order.events import (
    ItemRefunded,
    OrderItemCancelled,
    OrderItemDelivered,
    OrderSoftDeleted,
    OrderStatusUpdated,
    ReturnRequested,
    ReturnVerified,
)
from commerce.order.order import ItemStatus, Order, OrderStatus, ReturnDecision


def _place():
    order = Order.place(
        user_id="user-001",
        address_id="addr-001",
        payment_method="WALLET",
        lines=[
            {"product_id": "book-001", "quantity": 1, "price": 300.0},
            {"product_id": "book-002", "quantity": 2, "price": 100.0},
        ],
    )
    order._events.clear()
    return order


def _delivered():
    order = _place()
    order.mark_item_delivered("book-001")
    order.mark_item_delivered("book-002")
    order._events.clear()
    return order


class TestCancelItem:
    def test_cancel_item(self):
        order = _place()
        item = order.cancel_item("book-001", "Changed mind")

        assert item.status == ItemStatus.CANCELLED.value
        assert item.cancel_reason == "Changed mind"
        assert order.status == OrderStatus.PENDING.value

    def test_cancelling_every_item_cancels_order(self):
        order = _place()
        order.cancel_item("book-001")
        order.cancel_item("book-002")
        assert order.status == OrderStatus.CANCELLED.value

    def test_cancel_raises_event(self):
        order = _place()
        order.cancel_item("book-002", "Too expensive")

        event = order._events[0]
        assert isinstance(event, OrderItemCancelled)
        assert event.quantity == 2
        assert event.order_status == OrderStatus.PENDING.value

    def test_cancelled_item_cannot_be_cancelled_again(self):
        order = _place()
        order.cancel_item("book-001")
        with pytest.raises(PreconditionFailed):
            order.cancel_item("book-001")

    def test_delivered_item_cannot_be_cancelled(self):
        order = _place()
        order.mark_item_delivered("book-001")
        with pytest.raises(PreconditionFailed):
            order.cancel_item("book-001")

    def test_totals_unchanged_by_cancellation(self):
        order = _place()
        order.cancel_item("book-001")
        assert order.total == 500.0
        assert order.net_amount == 500.0


class TestCancellationWindow:
    def test_within_window(self):
        order = _place()
        order.assert_within_cancellation_window(datetime.now(UTC) + timedelta(hours=23))

    def test_outside_window(self):
        order = _place()
        with pytest.raises(PreconditionFailed):
            order.assert_within_cancellation_window(datetime.now(UTC) + timedelta(hours=25))

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.CANCELLED.value,
            OrderStatus.DELIVERED.value,
            OrderStatus.OUT_FOR_DELIVERY.value,
            OrderStatus.RETURNED.value,
        ],
    )
    def test_terminal_and_late_statuses_not_cancellable(self, status):
        order = _place()
        order.status = status
        with pytest.raises(PreconditionFailed):
            order.assert_cancellable()

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.PENDING.value, OrderStatus.PROCESSING.value, OrderStatus.SHIPPED.value],
    )
    def test_open_statuses_cancellable(self, status):
        order = _place()
        order.status = status
        order.assert_cancellable()


class TestDelivery:
    def test_deliver_item(self):
        order = _place()
        item = order.mark_item_delivered("book-001")

        assert item.status == ItemStatus.DELIVERED.value
        assert item.delivered_at is not None
        assert order.status == OrderStatus.PENDING.value
        assert isinstance(order._events[0], OrderItemDelivered)

    def test_delivering_all_items_delivers_order(self):
        assert _delivered().status == OrderStatus.DELIVERED.value

    def test_deliver_twice_fails(self):
        order = _place()
        order.mark_item_delivered("book-001")
        with pytest.raises(PreconditionFailed):
            order.mark_item_delivered("book-001")

    def test_cancelled_item_cannot_be_delivered(self):
        order = _place()
        order.cancel_item("book-001")
        with pytest.raises(PreconditionFailed):
            order.mark_item_delivered("book-001")

    def test_cancelled_order_cannot_be_delivered(self):
        order = _place()
        order.override_status(OrderStatus.CANCELLED.value)
        with pytest.raises(PreconditionFailed):
            order.mark_item_delivered("book-001")

    def test_delivery_keeps_admin_progress_status(self):
        order = _place()
        order.override_status(OrderStatus.SHIPPED.value)
        order.mark_item_delivered("book-001")
        assert order.status == OrderStatus.SHIPPED.value


class TestReturns:
    def test_request_return(self):
        order = _delivered()
        item = order.request_return("book-001", "Damaged cover")

        assert item.status == ItemStatus.RETURNED.value
        assert item.return_reason == "Damaged cover"
        assert item.return_verified is False
        assert order.status == OrderStatus.DELIVERED.value
        assert isinstance(order._events[0], ReturnRequested)

    def test_returning_every_item_returns_order(self):
        order = _delivered()
        order.request_return("book-001", "Damaged")
        order.request_return("book-002", "Wrong edition")
        assert order.status == OrderStatus.RETURNED.value

    def test_return_of_ordered_item_fails(self):
        order = _place()
        with pytest.raises(PreconditionFailed):
            order.request_return("book-001", "Damaged")

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_blank_reason_rejected(self, reason):
        order = _delivered()
        with pytest.raises(ValidationError):
            order.request_return("book-001", reason)

    def test_return_window_enforced(self):
        order = _delivered()
        with pytest.raises(PreconditionFailed):
            order.request_return("book-001", "Damaged", now=datetime.now(UTC) + timedelta(days=8))

    def test_verify_return(self):
        order = _delivered()
        order.request_return("book-001", "Damaged")
        order._events.clear()

        item = order.verify_return("book-001", approved=True)

        assert item.return_verified is True
        assert item.return_decision == ReturnDecision.APPROVED.value
        assert isinstance(order._events[0], ReturnVerified)

    def test_reject_return(self):
        order = _delivered()
        order.request_return("book-001", "Damaged")
        item = order.verify_return("book-001", approved=False)
        assert item.return_decision == ReturnDecision.REJECTED.value

    def test_verify_twice_fails(self):
        order = _delivered()
        order.request_return("book-001", "Damaged")
        order.verify_return("book-001", approved=True)
        with pytest.raises(PreconditionFailed):
            order.verify_return("book-001", approved=False)

    def test_verify_unreturned_item_fails(self):
        order = _delivered()
        with pytest.raises(PreconditionFailed):
            order.verify_return("book-001", approved=True)

    def test_refund_marks_item(self):
        order = _delivered()
        item = order.request_return("book-001", "Damaged")
        order._events.clear()
        order.mark_item_refunded(item)

        event = order._events[0]
        assert isinstance(event, ItemRefunded)
        assert event.amount == 300.0


class TestAdministration:
    def test_status_transition_allowed(self):
        order = _place()
        order.assert_status_transition(OrderStatus.SHIPPED.value)
        order.override_status(OrderStatus.SHIPPED.value)

        assert order.status == OrderStatus.SHIPPED.value
        event = order._events[0]
        assert isinstance(event, OrderStatusUpdated)
        assert event.previous_status == OrderStatus.PENDING.value

    def test_backwards_transition_rejected(self):
        order = _place()
        order.override_status(OrderStatus.SHIPPED.value)
        with pytest.raises(PreconditionFailed):
            order.assert_status_transition(OrderStatus.PROCESSING.value)

    def test_cancelled_order_cannot_be_updated(self):
        order = _place()
        order.override_status(OrderStatus.CANCELLED.value)
        with pytest.raises(PreconditionFailed):
            order.assert_status_transition(OrderStatus.PROCESSING.value)

    def test_unknown_status_rejected(self):
        order = _place()
        with pytest.raises(ValueError):
            order.assert_status_transition("Teleported")

    @pytest.mark.parametrize("status", [OrderStatus.DELIVERED.value, OrderStatus.OUT_FOR_DELIVERY.value])
    def test_late_orders_not_deletable(self, status):
        order = _place()
        order.status = status
        with pytest.raises(PreconditionFailed):
            order.assert_deletable()

    def test_soft_delete(self):
        order = _place()
        order.soft_delete()

        assert order.is_deleted is True
        assert order.deleted_at is not None
        assert isinstance(order._events[0], OrderSoftDeleted)
