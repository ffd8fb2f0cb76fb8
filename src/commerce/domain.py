"""Commerce bounded context — Orders, Stock, Coupons and Wallets.

Stock, orders, coupons and wallets live in one domain so that a single
Unit of Work can reserve stock, mutate an order and move money together.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)
