"""Application tests for item and whole-order cancellation."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain

from commerce import services
from commerce.errors import OrderNotFound, PreconditionFailed
from commerce.order.order import ItemStatus, Order, OrderStatus
from commerce.stock.stock import ProductStock


def _available(product_id):
    return current_domain.repository_for(ProductStock).get(product_id).available_quantity


def _two_book_order(payment_method="COD"):
    return services.place_order(
        "user-001",
        "addr-001",
        [{"product_id": "book-001", "quantity": 2}, {"product_id": "book-002", "quantity": 1}],
        payment_method,
    )


def _age(order, hours):
    repo = current_domain.repository_for(Order)
    stored = repo.get(order.id)
    stored.placed_at = datetime.now(UTC) - timedelta(hours=hours)
    repo.add(stored)


class TestCancelOrderItem:
    def test_cancel_item_restocks(self, books):
        order = _two_book_order()
        order = services.cancel_order_item("user-001", order.id, "book-001", "Changed mind")

        item = order.item_for("book-001")
        assert item.status == ItemStatus.CANCELLED.value
        assert item.cancel_reason == "Changed mind"
        assert order.status == OrderStatus.PENDING.value
        assert _available("book-001") == 5
        assert _available("book-002") == 4

    def test_cod_cancellation_does_not_touch_wallet(self, books):
        order = _two_book_order()
        services.cancel_order_item("user-001", order.id, "book-001")
        assert services.get_wallet_balance("user-001") == {"balance": 0.0, "transactions": []}

    def test_paid_online_cancellation_refunds_item_total(self, books):
        order = _two_book_order("ONLINE")
        services.record_payment(order.id, "pay_001")

        services.cancel_order_item("user-001", order.id, "book-001")

        wallet = services.get_wallet_balance("user-001")
        assert wallet["balance"] == 400.0
        assert len(wallet["transactions"]) == 1
        assert order.order_number in wallet["transactions"][0]["description"]

    def test_unpaid_online_cancellation_does_not_refund(self, books):
        order = _two_book_order("ONLINE")
        services.cancel_order_item("user-001", order.id, "book-001")
        assert services.get_wallet_balance("user-001")["balance"] == 0.0

    def test_cancel_same_item_twice_fails_without_double_restock(self, books):
        order = _two_book_order()
        services.cancel_order_item("user-001", order.id, "book-001")

        with pytest.raises(PreconditionFailed):
            services.cancel_order_item("user-001", order.id, "book-001")
        assert _available("book-001") == 5

    def test_cancel_after_window_fails(self, books):
        order = _two_book_order()
        _age(order, hours=25)

        with pytest.raises(PreconditionFailed):
            services.cancel_order_item("user-001", order.id, "book-001")
        assert _available("book-001") == 3

    def test_other_users_order_reads_as_missing(self, books):
        order = _two_book_order()
        with pytest.raises(OrderNotFound):
            services.cancel_order_item("user-002", order.id, "book-001")

    def test_cancelling_last_item_cancels_order(self, books):
        order = services.place_order("user-001", "addr-001", [{"product_id": "book-003", "quantity": 1}], "COD")
        order = services.cancel_order_item("user-001", order.id, "book-003")
        assert order.status == OrderStatus.CANCELLED.value


class TestCancelWholeOrder:
    def test_cancel_whole_order(self, books):
        order = _two_book_order()
        order = services.cancel_whole_order("user-001", order.id, "Ordered by mistake")

        assert order.status == OrderStatus.CANCELLED.value
        assert all(item.status == ItemStatus.CANCELLED.value for item in order.items)
        assert _available("book-001") == 5
        assert _available("book-002") == 5

    def test_one_credit_per_item(self, books):
        services.credit_wallet("user-001", 2000.0)
        order = _two_book_order("WALLET")

        services.cancel_whole_order("user-001", order.id)

        wallet = services.get_wallet_balance("user-001")
        credits = [txn for txn in wallet["transactions"] if txn["type"] == "credit"]
        assert [txn["amount"] for txn in credits[1:]] == [400.0, 300.0]
        assert wallet["balance"] == 2000.0

    def test_already_cancelled_item_skipped(self, books):
        order = _two_book_order()
        services.cancel_order_item("user-001", order.id, "book-001")

        order = services.cancel_whole_order("user-001", order.id)

        assert order.status == OrderStatus.CANCELLED.value
        assert _available("book-001") == 5
        assert _available("book-002") == 5

    def test_cancelled_order_cannot_be_cancelled_again(self, books):
        order = _two_book_order()
        services.cancel_whole_order("user-001", order.id)
        with pytest.raises(PreconditionFailed):
            services.cancel_whole_order("user-001", order.id)

    def test_out_for_delivery_order_not_cancellable(self, books):
        order = _two_book_order()
        services.update_order_status("admin-001", order.id, OrderStatus.OUT_FOR_DELIVERY.value)

        with pytest.raises(PreconditionFailed):
            services.cancel_whole_order("user-001", order.id)
        assert _available("book-001") == 3

    def test_delivered_order_not_cancellable(self, books):
        order = _two_book_order()
        services.update_order_status("admin-001", order.id, OrderStatus.DELIVERED.value)
        with pytest.raises(PreconditionFailed):
            services.cancel_whole_order("user-001", order.id)

    def test_cancel_after_window_fails(self, books):
        order = _two_book_order()
        _age(order, hours=30)
        with pytest.raises(PreconditionFailed):
            services.cancel_whole_order("user-001", order.id)
