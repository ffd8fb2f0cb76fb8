"""BDD tests for the wallet ledger."""

from datetime import UTC, datetime

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, when

from commerce import services
from commerce.wallet.wallet import Wallet, WalletTransaction

scenarios("features/wallet_ledger.feature")


@given(parsers.cfparse('a debit of {amount:f} was logged for "{user_id}" outside the ledger'))
def stray_debit(amount, user_id):
    repo = current_domain.repository_for(Wallet)
    wallet = repo.get(user_id)
    wallet.add_transactions(
        WalletTransaction(transaction_type="debit", amount=amount, occurred_at=datetime.now(UTC))
    )
    repo.add(wallet)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{user_id}" pays for {quantity:d} of "{product_id}" from their wallet'))
def pay_from_wallet(attempt, user_id, quantity, product_id):
    attempt(
        services.place_order,
        user_id,
        "addr-001",
        [{"product_id": product_id, "quantity": quantity}],
        "WALLET",
    )


@when(parsers.cfparse('"{user_id}" is credited {amount:f}'))
def credit(attempt, user_id, amount):
    attempt(services.credit_wallet, user_id, amount, "Goodwill")


@when(parsers.cfparse('the wallet of "{user_id}" is reconciled'))
def reconcile(attempt, user_id):
    attempt(services.reconcile_wallet, user_id)
