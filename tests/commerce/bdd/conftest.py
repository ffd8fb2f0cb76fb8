"""Shared BDD fixtures and step definitions for the commerce core."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from commerce import services
from commerce.errors import DomainError
from commerce.stock.stock import ProductStock


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the domain error raised by the last action, if any."""
    return {"exc": None}


@pytest.fixture()
def context():
    return {}


@pytest.fixture()
def attempt(error):
    """Run an action, capturing the domain error it raises instead of failing the step."""

    def _attempt(action, *args, **kwargs):
        try:
            return action(*args, **kwargs)
        except DomainError as exc:
            error["exc"] = exc
            return None

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{product_id}" priced {price:f} with {quantity:d} in stock'))
def product_in_stock(product_id, price, quantity):
    services.register_product(product_id, product_id.title(), price, quantity=quantity)


@given(parsers.cfparse('"{user_id}" has {amount:f} in their wallet'))
def wallet_funded(user_id, amount):
    services.credit_wallet(user_id, amount, "Opening balance")


@given(parsers.cfparse('"{user_id}" placed a {method} order for {quantity:d} of "{product_id}"'))
def order_placed(context, user_id, method, quantity, product_id):
    address_id = "addr-001" if user_id == "user-001" else "addr-002"
    order = services.place_order(user_id, address_id, [{"product_id": product_id, "quantity": quantity}], method)
    context["order_id"] = order.id
    context.setdefault("product_ids", []).append(product_id)


@given(parsers.cfparse('"{user_id}" placed a {method} order for "{first}" and "{second}"'))
def order_placed_for_two(context, user_id, method, first, second):
    order = services.place_order(
        user_id,
        "addr-001",
        [{"product_id": first, "quantity": 1}, {"product_id": second, "quantity": 1}],
        method,
    )
    context["order_id"] = order.id


@given("the payment was received")
def payment_received(context):
    services.record_payment(context["order_id"], "pay_bdd_001")


@given(parsers.cfparse('"{product_id}" was delivered'))
def item_delivered(context, product_id):
    services.mark_item_delivered("admin-001", context["order_id"], product_id)


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the action fails with "{kind}"'))
def action_fails_with(error, kind):
    assert error["exc"] is not None, "Expected a domain error but none was raised"
    assert error["exc"].kind == kind


@then("the action succeeds")
def action_succeeds(error):
    assert error["exc"] is None, f"Unexpected error: {error['exc']!r}"


@then(parsers.cfparse('"{product_id}" has {quantity:d} in stock'))
def stock_is(product_id, quantity):
    assert current_domain.repository_for(ProductStock).get(product_id).available_quantity == quantity


@then(parsers.cfparse('the wallet balance of "{user_id}" is {amount:f}'))
def wallet_balance_is(user_id, amount):
    assert services.get_wallet_balance(user_id)["balance"] == amount


@then(parsers.cfparse('the wallet of "{user_id}" has {count:d} transactions'))
def wallet_transaction_count(user_id, count):
    assert len(services.get_wallet_balance(user_id)["transactions"]) == count


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(context, status):
    from commerce.order.order import Order

    assert current_domain.repository_for(Order).get(context["order_id"]).status == status
