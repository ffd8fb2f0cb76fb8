"""Order placement — command and handler.

Placement is the one operation that touches every ledger at once: it
reserves stock for each line, optionally redeems a coupon, and for wallet
payments debits the net amount. All of it commits together or not at all.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce import config
from commerce.address import get_address_directory
from commerce.coupon.coupon import Coupon
from commerce.domain import commerce, logger
from commerce.order.order import Order, PaymentMethod
from commerce.stock.stock import ProductStock
from commerce.wallet.wallet import Wallet


@commerce.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    address_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{"product_id": ..., "quantity": ...}]
    payment_method = String(required=True, choices=PaymentMethod)
    coupon_code = String(max_length=50)


def shipping_charge_for(total):
    if total >= config.FREE_SHIPPING_THRESHOLD:
        return 0.0
    return config.FLAT_SHIPPING_CHARGE


def parse_order_lines(raw_items):
    """Validate the requested lines: non-empty, positive quantities, no repeats."""
    lines = json.loads(raw_items) if isinstance(raw_items, str) else raw_items
    if not lines:
        raise ValidationError({"items": ["Order must contain at least one item"]})

    seen = set()
    parsed = []
    for line in lines:
        product_id = str(line.get("product_id") or "").strip()
        quantity = line.get("quantity")
        if not product_id:
            raise ValidationError({"items": ["Every item needs a product_id"]})
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError({"items": [f"Invalid quantity for product {product_id}"]})
        if product_id in seen:
            raise ValidationError({"items": [f"Product {product_id} appears more than once"]})
        seen.add(product_id)
        parsed.append({"product_id": product_id, "quantity": quantity})
    return parsed


@commerce.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = parse_order_lines(command.items)

        if not get_address_directory().belongs_to(command.address_id, command.user_id):
            raise ValidationError({"address_id": ["Invalid or unauthorized address"]})

        stock_repo = current_domain.repository_for(ProductStock)
        stocks = [stock_repo.get_stock(line["product_id"]) for line in lines]

        priced = [
            {"product_id": line["product_id"], "quantity": line["quantity"], "price": stock.price}
            for line, stock in zip(lines, stocks)
        ]
        total = round(sum(line["price"] * line["quantity"] for line in priced), 2)

        order = Order.place(
            user_id=command.user_id,
            address_id=command.address_id,
            payment_method=command.payment_method,
            lines=priced,
            shipping_charge=shipping_charge_for(total),
        )

        for line, stock in zip(lines, stocks):
            stock.reserve(line["quantity"], order_id=order.id)

        coupon = None
        if command.coupon_code:
            coupon = current_domain.repository_for(Coupon).get_by_code(command.coupon_code)
            discount = coupon.redeem(order.total, command.user_id, order_id=order.id)
            order.apply_coupon(coupon.code, discount)

        wallet = None
        if command.payment_method == PaymentMethod.WALLET.value:
            wallet = current_domain.repository_for(Wallet).get_wallet(command.user_id)
            wallet.debit(order.net_amount, f"Payment for Order {order.order_number}")

        # Every check has passed; hand the changes to the Unit of Work
        for stock in stocks:
            stock_repo.add(stock)
        if coupon is not None:
            current_domain.repository_for(Coupon).add(coupon)
        if wallet is not None:
            current_domain.repository_for(Wallet).add(wallet)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order.placed",
            order_id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.user_id),
            net_amount=order.net_amount,
        )
        return str(order.id)
