"""Domain error taxonomy for the commerce core.

Malformed input is reported with Protean's ``ValidationError``. Everything
else a lifecycle call can refuse is one of the errors below. Each carries a
``kind`` tag that survives into logs, and a human-readable ``message``.
"""


class DomainError(Exception):
    kind = "domain_error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class NotFoundError(DomainError):
    kind = "not_found"


class OrderNotFound(NotFoundError):
    pass


class OrderItemNotFound(NotFoundError):
    pass


class ProductNotFound(NotFoundError):
    pass


class WalletNotFound(NotFoundError):
    pass


class CouponNotFound(NotFoundError):
    pass


# ---------------------------------------------------------------------------
# State machine guards
# ---------------------------------------------------------------------------
class PreconditionFailed(DomainError):
    kind = "precondition_failed"


class ProductUnavailable(PreconditionFailed):
    pass


# ---------------------------------------------------------------------------
# Ledgers
# ---------------------------------------------------------------------------
class InsufficientStock(DomainError):
    kind = "insufficient_stock"


class InsufficientBalance(DomainError):
    kind = "insufficient_balance"


class LimitExceeded(DomainError):
    kind = "limit_exceeded"


class InvalidAmount(LimitExceeded):
    pass


class CouponExpired(LimitExceeded):
    pass


class CouponExhausted(LimitExceeded):
    pass


# ---------------------------------------------------------------------------
# Transient
# ---------------------------------------------------------------------------
class TransactionConflict(DomainError):
    kind = "transaction_conflict"
