"""Domain events for the ProductStock aggregate.

Only the current ``available_quantity`` lives on the aggregate; these events
are the durable record of why it changed (see the stock movement log).
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="ProductStock")
class ProductRegistered:
    """A product was added to the catalogue with an opening stock count."""

    __version__ = 1

    product_id = Identifier(required=True)
    title = String(required=True)
    price = Float(required=True)
    initial_quantity = Integer(required=True)
    registered_at = DateTime(required=True)


@commerce.event(part_of="ProductStock")
class StockReceived:
    """New units arrived and were added to available stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_available = Integer(required=True)
    new_available = Integer(required=True)
    received_at = DateTime(required=True)


@commerce.event(part_of="ProductStock")
class StockReserved:
    """Units were taken out of available stock for an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    previous_available = Integer(required=True)
    new_available = Integer(required=True)
    reserved_at = DateTime(required=True)


@commerce.event(part_of="ProductStock")
class StockRestocked:
    """A previous reservation was reversed and its units made available again."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier()
    quantity = Integer(required=True)
    reason = String()
    previous_available = Integer(required=True)
    new_available = Integer(required=True)
    restocked_at = DateTime(required=True)


@commerce.event(part_of="ProductStock")
class ProductDiscontinued:
    """The product was soft-deleted; it can no longer be reserved."""

    __version__ = 1

    product_id = Identifier(required=True)
    remaining_quantity = Integer(required=True)
    discontinued_at = DateTime(required=True)
