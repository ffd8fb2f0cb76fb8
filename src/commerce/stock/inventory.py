"""Inventory administration — commands and handler.

Registering products, receiving stock and discontinuing products. Reserving
and restocking never go through these commands: they only happen as part of
an order lifecycle transaction.
"""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce, logger
from commerce.stock.stock import ProductStock


@commerce.command(part_of="ProductStock")
class RegisterProduct:
    """Add a product with its list price and opening stock."""

    product_id = Identifier(required=True)
    title = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(default=0, min_value=0)


@commerce.command(part_of="ProductStock")
class ReceiveStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="ProductStock")
class DiscontinueProduct:
    product_id = Identifier(required=True)


@commerce.command_handler(part_of=ProductStock)
class InventoryHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        stock = ProductStock.register(
            product_id=command.product_id,
            title=command.title,
            price=command.price,
            quantity=command.quantity or 0,
        )
        current_domain.repository_for(ProductStock).add(stock)
        logger.info("stock.product_registered", product_id=str(stock.product_id), quantity=stock.available_quantity)
        return str(stock.product_id)

    @handle(ReceiveStock)
    def receive_stock(self, command):
        repo = current_domain.repository_for(ProductStock)
        stock = repo.get_stock(command.product_id)
        stock.receive(command.quantity)
        repo.add(stock)

    @handle(DiscontinueProduct)
    def discontinue_product(self, command):
        repo = current_domain.repository_for(ProductStock)
        stock = repo.get_stock(command.product_id)
        stock.discontinue()
        repo.add(stock)
