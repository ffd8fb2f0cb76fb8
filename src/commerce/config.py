"""Business limits for the commerce core.

Every value can be overridden through an environment variable of the same
name, which keeps the limits out of ``domain.toml`` (framework settings only).
"""

import os


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


# Wallet ceilings for a single transaction
MAX_WALLET_CREDIT = _float("COMMERCE_MAX_WALLET_CREDIT", 100000.0)
MAX_WALLET_DEBIT = _float("COMMERCE_MAX_WALLET_DEBIT", 50000.0)

# Customer-facing windows
CANCELLATION_WINDOW_HOURS = _int("COMMERCE_CANCELLATION_WINDOW_HOURS", 24)
RETURN_WINDOW_DAYS = _int("COMMERCE_RETURN_WINDOW_DAYS", 7)

# Shipping: flat charge below the free-shipping threshold
FREE_SHIPPING_THRESHOLD = _float("COMMERCE_FREE_SHIPPING_THRESHOLD", 500.0)
FLAT_SHIPPING_CHARGE = _float("COMMERCE_FLAT_SHIPPING_CHARGE", 50.0)

# Attempts for a command that keeps hitting version conflicts
MAX_TRANSACTION_RETRIES = _int("COMMERCE_MAX_RETRIES", 3)

ORDER_NUMBER_PREFIX = os.getenv("COMMERCE_ORDER_NUMBER_PREFIX", "CHAP")
