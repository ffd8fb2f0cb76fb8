"""Repository for the ProductStock aggregate."""

from protean.exceptions import ObjectNotFoundError

from commerce.domain import commerce
from commerce.errors import ProductNotFound
from commerce.stock.stock import ProductStock


@commerce.repository(part_of=ProductStock)
class ProductStockRepository:
    def get_stock(self, product_id) -> ProductStock:
        """Load a product's stock record, soft-deleted ones included."""
        try:
            return self.get(str(product_id))
        except ObjectNotFoundError as exc:
            raise ProductNotFound(f"Product not found: {product_id}", product_id=str(product_id)) from exc
