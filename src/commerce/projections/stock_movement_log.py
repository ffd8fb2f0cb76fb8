"""Stock movement log — append-only record of every change to available stock.

``available_quantity`` on ProductStock only says where stock stands; this log
says how it got there, one entry per registration, receipt, reservation and
restock.
"""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.stock.events import (
    ProductDiscontinued,
    ProductRegistered,
    StockReceived,
    StockReserved,
    StockRestocked,
)
from commerce.stock.stock import ProductStock


@commerce.projection
class StockMovement:
    entry_id = Identifier(identifier=True, required=True)
    product_id = Identifier(required=True)
    movement_type = String(required=True, max_length=50)
    quantity_change = Integer(required=True)
    balance_after = Integer(required=True)
    order_id = Identifier()
    note = String(max_length=500)
    occurred_at = DateTime(required=True)


def _record(product_id, movement_type, quantity_change, balance_after, occurred_at, order_id=None, note=None):
    current_domain.repository_for(StockMovement).add(
        StockMovement(
            entry_id=str(uuid.uuid4()),
            product_id=product_id,
            movement_type=movement_type,
            quantity_change=quantity_change,
            balance_after=balance_after,
            order_id=order_id,
            note=note,
            occurred_at=occurred_at,
        )
    )


@commerce.projector(projector_for=StockMovement, aggregates=[ProductStock])
class StockMovementProjector:
    @on(ProductRegistered)
    def on_product_registered(self, event):
        _record(
            event.product_id,
            "Registered",
            event.initial_quantity,
            event.initial_quantity,
            event.registered_at,
            note=event.title,
        )

    @on(StockReceived)
    def on_stock_received(self, event):
        _record(event.product_id, "Received", event.quantity, event.new_available, event.received_at)

    @on(StockReserved)
    def on_stock_reserved(self, event):
        _record(
            event.product_id,
            "Reserved",
            -event.quantity,
            event.new_available,
            event.reserved_at,
            order_id=event.order_id,
        )

    @on(StockRestocked)
    def on_stock_restocked(self, event):
        _record(
            event.product_id,
            "Restocked",
            event.quantity,
            event.new_available,
            event.restocked_at,
            order_id=event.order_id,
            note=event.reason,
        )

    @on(ProductDiscontinued)
    def on_product_discontinued(self, event):
        _record(
            event.product_id,
            "Discontinued",
            0,
            event.remaining_quantity,
            event.discontinued_at,
        )


def movements_for(product_id) -> list:
    entries = current_domain.repository_for(StockMovement)._dao.query.filter(product_id=str(product_id)).all().items
    return sorted(entries, key=lambda entry: entry.occurred_at)
