"""Application tests for inventory administration commands."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from commerce import services
from commerce.errors import PreconditionFailed, ProductNotFound
from commerce.stock.inventory import ReceiveStock
from commerce.stock.stock import ProductStock


def _stock(product_id):
    return current_domain.repository_for(ProductStock).get(product_id)


class TestRegisterProduct:
    def test_register_product(self):
        assert services.register_product("book-100", "Middlemarch", 420.0, quantity=3) == "book-100"
        stock = _stock("book-100")
        assert stock.title == "Middlemarch"
        assert stock.price == 420.0
        assert stock.available_quantity == 3

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            services.register_product("book-100", "Middlemarch", -1.0)


class TestReceiveStock:
    def test_receive_stock(self, books):
        services.receive_stock("book-003", 9)
        assert _stock("book-003").available_quantity == 10

    def test_receive_for_unknown_product(self):
        with pytest.raises(ProductNotFound):
            services.receive_stock("book-404", 1)

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            ReceiveStock(product_id="book-001", quantity=0)


class TestDiscontinueProduct:
    def test_discontinue(self, books):
        services.discontinue_product("book-001")
        assert _stock("book-001").is_deleted is True

    def test_discontinue_twice(self, books):
        services.discontinue_product("book-001")
        with pytest.raises(PreconditionFailed):
            services.discontinue_product("book-001")
