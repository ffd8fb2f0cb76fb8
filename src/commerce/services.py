"""Service facade — the operations the rest of the system calls.

Each function builds a typed command and processes it synchronously; the
command handler runs inside one Unit of Work, so a call either commits all
of its stock, order, coupon and wallet changes or none of them.

A write against an aggregate that changed underneath us raises Protean's
``ExpectedVersionError``. Those calls are retried from scratch a bounded
number of times before surfacing as ``TransactionConflict``. Domain errors
are never retried.

Callers must run inside an active domain context (``commerce.domain_context()``).
"""

import json

from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from commerce import config
from commerce.coupon.coupon import Coupon
from commerce.coupon.registry import CreateCoupon, DeactivateCoupon, DeactivateIfExpired
from commerce.domain import logger
from commerce.errors import DomainError, TransactionConflict
from commerce.order.administration import SoftDeleteOrder, UpdateOrderStatus
from commerce.order.cancellation import CancelOrderItem, CancelWholeOrder
from commerce.order.coupons import ApplyCoupon, RemoveCoupon
from commerce.order.delivery import MarkItemDelivered
from commerce.order.order import Order
from commerce.order.payment import RecordPayment, RecordPaymentFailure
from commerce.order.placement import PlaceOrder
from commerce.order.returns import RequestReturn, VerifyReturn
from commerce.stock.inventory import DiscontinueProduct, ReceiveStock, RegisterProduct
from commerce.utils.logging import command_context
from commerce.wallet.ledger import CreditWallet, DebitWallet, ReconcileWallet, wallet_balance


def dispatch(command):
    """Process a command, retrying on optimistic-concurrency conflicts."""
    name = command.__class__.__name__
    attempts = max(config.MAX_TRANSACTION_RETRIES, 1)
    last_conflict = None

    with command_context(command):
        for attempt in range(1, attempts + 1):
            try:
                return current_domain.process(command, asynchronous=False)
            except ExpectedVersionError as exc:
                last_conflict = exc
                logger.warning("commerce.version_conflict", attempt=attempt, max_attempts=attempts)
            except DomainError as exc:
                logger.info("commerce.command_rejected", error=exc)
                raise

        conflict = TransactionConflict(
            f"{name} kept conflicting with concurrent updates; gave up after {attempts} attempts",
            command=name,
        )
        logger.error("commerce.command_rejected", error=conflict)
        raise conflict from last_conflict


def _order(order_id) -> Order:
    return current_domain.repository_for(Order).get_order(order_id)


# ---------------------------------------------------------------------------
# Order lifecycle
# ---------------------------------------------------------------------------
def place_order(user_id, address_id, items, payment_method, coupon_code=None) -> Order:
    """Place an order for ``items``: a list of ``{"product_id", "quantity"}`` dicts."""
    order_id = dispatch(
        PlaceOrder(
            user_id=user_id,
            address_id=address_id,
            items=json.dumps(items),
            payment_method=payment_method,
            coupon_code=coupon_code,
        )
    )
    return _order(order_id)


def cancel_order_item(user_id, order_id, product_id, reason=None) -> Order:
    dispatch(CancelOrderItem(user_id=user_id, order_id=order_id, product_id=product_id, reason=reason))
    return _order(order_id)


def cancel_whole_order(user_id, order_id, reason=None) -> Order:
    dispatch(CancelWholeOrder(user_id=user_id, order_id=order_id, reason=reason))
    return _order(order_id)


def request_return(user_id, order_id, product_id, reason) -> Order:
    dispatch(RequestReturn(user_id=user_id, order_id=order_id, product_id=product_id, reason=reason))
    return _order(order_id)


def verify_return(admin_id, order_id, product_id, approved) -> Order:
    dispatch(VerifyReturn(admin_id=admin_id, order_id=order_id, product_id=product_id, approved=approved))
    return _order(order_id)


def mark_item_delivered(admin_id, order_id, product_id) -> Order:
    dispatch(MarkItemDelivered(admin_id=admin_id, order_id=order_id, product_id=product_id))
    return _order(order_id)


def update_order_status(admin_id, order_id, status) -> Order:
    dispatch(UpdateOrderStatus(admin_id=admin_id, order_id=order_id, status=status))
    return _order(order_id)


def soft_delete_order(admin_id, order_id) -> None:
    dispatch(SoftDeleteOrder(admin_id=admin_id, order_id=order_id))


def record_payment(order_id, payment_id) -> Order:
    dispatch(RecordPayment(order_id=order_id, payment_id=payment_id))
    return _order(order_id)


def record_payment_failure(order_id, reason=None) -> Order:
    dispatch(RecordPaymentFailure(order_id=order_id, reason=reason))
    return _order(order_id)


def list_orders(user_id) -> list:
    return current_domain.repository_for(Order).orders_for_user(user_id)


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
def apply_coupon(order_id, code) -> Order:
    dispatch(ApplyCoupon(order_id=order_id, coupon_code=code))
    return _order(order_id)


def remove_coupon(order_id) -> Order:
    dispatch(RemoveCoupon(order_id=order_id))
    return _order(order_id)


def create_coupon(code, discount_percentage, **options) -> str:
    return dispatch(CreateCoupon(code=code, discount_percentage=discount_percentage, **options))


def deactivate_coupon(code) -> None:
    dispatch(DeactivateCoupon(code=code))


def list_available_coupons(user_id=None) -> list:
    """Active coupons that can still be redeemed, optionally by a given user.

    Expired coupons found along the way are deactivated, each through its own
    command, before being filtered out.
    """
    available = []
    for coupon in current_domain.repository_for(Coupon).active_coupons():
        if coupon.is_expired():
            dispatch(DeactivateIfExpired(code=coupon.code))
            continue
        if coupon.is_exhausted():
            continue
        if user_id is not None and str(user_id) in coupon.redeemed_by:
            continue
        available.append(coupon)
    return sorted(available, key=lambda coupon: coupon.code)


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------
def get_wallet_balance(user_id) -> dict:
    return wallet_balance(user_id)


def credit_wallet(user_id, amount, description=None) -> float:
    return dispatch(CreditWallet(user_id=user_id, amount=amount, description=description))


def debit_wallet(user_id, amount, description=None) -> float:
    return dispatch(DebitWallet(user_id=user_id, amount=amount, description=description))


def reconcile_wallet(user_id) -> float:
    return dispatch(ReconcileWallet(user_id=user_id))


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
def register_product(product_id, title, price, quantity=0) -> str:
    return dispatch(RegisterProduct(product_id=product_id, title=title, price=price, quantity=quantity))


def receive_stock(product_id, quantity) -> None:
    dispatch(ReceiveStock(product_id=product_id, quantity=quantity))


def discontinue_product(product_id) -> None:
    dispatch(DiscontinueProduct(product_id=product_id))
