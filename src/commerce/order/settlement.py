"""Moving stock and money when order items leave the ``ordered`` state.

A ``Settlement`` wraps one order for the duration of a command. It loads the
stock records and the wallet it needs on first use, mutates them in memory
alongside the order, and ``persist()`` adds everything to the Unit of Work
at the end. A domain error raised before ``persist()`` leaves nothing behind.
"""

from protean.utils.globals import current_domain

from commerce.domain import logger
from commerce.order.order import Order
from commerce.stock.stock import ProductStock
from commerce.wallet.wallet import Wallet


class Settlement:
    def __init__(self, order: Order) -> None:
        self.order = order
        self._stocks: dict[str, ProductStock] = {}
        self._wallet: Wallet | None = None

    def stock_for(self, product_id) -> ProductStock:
        key = str(product_id)
        if key not in self._stocks:
            self._stocks[key] = current_domain.repository_for(ProductStock).get_stock(key)
        return self._stocks[key]

    def wallet(self) -> Wallet:
        if self._wallet is None:
            self._wallet = current_domain.repository_for(Wallet).get_or_create_wallet(self.order.user_id)
        return self._wallet

    def cancel_item(self, product_id, reason, refund_description):
        """Cancel an ordered item, return its units to stock and refund it if eligible."""
        item = self.order.cancel_item(product_id, reason)
        self.stock_for(item.product_id).restock(item.quantity, order_id=self.order.id, reason=reason)
        self.refund(item, refund_description)
        return item

    def cancel_open_items(self, reason, refund_description):
        return [
            self.cancel_item(item.product_id, reason, refund_description)
            for item in self.order.open_items()
        ]

    def refund(self, item, description) -> float:
        """Credit the item total to the owner's wallet, at most once per item."""
        if not self.order.is_refund_eligible(item):
            return 0.0

        self.wallet().credit(item.total, description)
        self.order.mark_item_refunded(item)
        logger.info(
            "wallet.refunded",
            order_id=str(self.order.id),
            user_id=str(self.order.user_id),
            product_id=str(item.product_id),
            amount=item.total,
        )
        return item.total

    def persist(self) -> None:
        stock_repo = current_domain.repository_for(ProductStock)
        for stock in self._stocks.values():
            stock_repo.add(stock)

        if self._wallet is not None:
            current_domain.repository_for(Wallet).add(self._wallet)

        current_domain.repository_for(Order).add(self.order)
