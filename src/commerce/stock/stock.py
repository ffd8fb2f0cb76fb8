"""ProductStock aggregate (CQRS) — the stock ledger of one product.

Holds the units that can still be sold. Reservation is a check-and-decrement
on this aggregate; because aggregates are versioned, two transactions that
reserve from the same product cannot both commit against the same reading.

    reserve:  available_quantity -= quantity   (fails, untouched, if short)
    restock:  available_quantity += quantity   (reversal of a reservation)
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce
from commerce.errors import InsufficientStock, PreconditionFailed, ProductUnavailable
from commerce.stock.events import (
    ProductDiscontinued,
    ProductRegistered,
    StockReceived,
    StockReserved,
    StockRestocked,
)


@commerce.aggregate
class ProductStock:
    product_id = Identifier(identifier=True, required=True)
    title = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    available_quantity = Integer(default=0)
    is_deleted = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def available_quantity_is_never_negative(self):
        if self.available_quantity is not None and self.available_quantity < 0:
            raise ValidationError({"available_quantity": ["Available quantity cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, product_id, title, price, quantity=0):
        if quantity < 0:
            raise ValidationError({"quantity": ["Opening quantity cannot be negative"]})

        now = datetime.now(UTC)
        stock = cls(
            product_id=product_id,
            title=title,
            price=price,
            available_quantity=quantity,
            created_at=now,
            updated_at=now,
        )
        stock.raise_(
            ProductRegistered(
                product_id=str(stock.product_id),
                title=title,
                price=price,
                initial_quantity=quantity,
                registered_at=now,
            )
        )
        return stock

    # -------------------------------------------------------------------
    # Ledger operations
    # -------------------------------------------------------------------
    def reserve(self, quantity, order_id=None):
        """Take ``quantity`` units out of available stock for an order."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if self.is_deleted:
            raise ProductUnavailable(
                f"Product not available: {self.title}",
                product_id=str(self.product_id),
            )
        if self.available_quantity < quantity:
            raise InsufficientStock(
                f"Insufficient stock for: {self.title}",
                product_id=str(self.product_id),
                available=self.available_quantity,
                requested=quantity,
            )

        previous = self.available_quantity
        now = datetime.now(UTC)
        self.available_quantity = previous - quantity
        self.updated_at = now

        self.raise_(
            StockReserved(
                product_id=str(self.product_id),
                order_id=str(order_id) if order_id else None,
                quantity=quantity,
                previous_available=previous,
                new_available=self.available_quantity,
                reserved_at=now,
            )
        )

    def restock(self, quantity, order_id=None, reason=None):
        """Give back the units of a reversed reservation.

        The ledger does not know whether the reservation was already reversed;
        callers only restock items leaving the ``ordered`` state.
        """
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        previous = self.available_quantity
        now = datetime.now(UTC)
        self.available_quantity = previous + quantity
        self.updated_at = now

        self.raise_(
            StockRestocked(
                product_id=str(self.product_id),
                order_id=str(order_id) if order_id else None,
                quantity=quantity,
                reason=reason,
                previous_available=previous,
                new_available=self.available_quantity,
                restocked_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Inventory administration
    # -------------------------------------------------------------------
    def receive(self, quantity):
        """Add newly received units to available stock."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.available_quantity
        now = datetime.now(UTC)
        self.available_quantity = previous + quantity
        self.updated_at = now

        self.raise_(
            StockReceived(
                product_id=str(self.product_id),
                quantity=quantity,
                previous_available=previous,
                new_available=self.available_quantity,
                received_at=now,
            )
        )

    def discontinue(self):
        """Soft-delete the product. Historical orders keep referencing it."""
        if self.is_deleted:
            raise PreconditionFailed(f"Product {self.title} is already discontinued")

        now = datetime.now(UTC)
        self.is_deleted = True
        self.updated_at = now

        self.raise_(
            ProductDiscontinued(
                product_id=str(self.product_id),
                remaining_quantity=self.available_quantity,
                discontinued_at=now,
            )
        )
