"""Wallet ledger — commands, handler, and the balance query."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce, logger
from commerce.wallet.wallet import Wallet


@commerce.command(part_of="Wallet")
class CreditWallet:
    user_id = Identifier(required=True)
    amount = Float(required=True)
    description = String(max_length=500)


@commerce.command(part_of="Wallet")
class DebitWallet:
    user_id = Identifier(required=True)
    amount = Float(required=True)
    description = String(max_length=500)


@commerce.command(part_of="Wallet")
class ReconcileWallet:
    user_id = Identifier(required=True)


@commerce.command_handler(part_of=Wallet)
class WalletLedgerHandler:
    @handle(CreditWallet)
    def credit_wallet(self, command):
        repo = current_domain.repository_for(Wallet)
        wallet = repo.get_or_create_wallet(command.user_id)
        wallet.credit(command.amount, command.description)
        repo.add(wallet)
        logger.info("wallet.credited", amount=command.amount, balance=wallet.balance)
        return wallet.balance

    @handle(DebitWallet)
    def debit_wallet(self, command):
        repo = current_domain.repository_for(Wallet)
        wallet = repo.get_wallet(command.user_id)
        wallet.debit(command.amount, command.description)
        repo.add(wallet)
        logger.info("wallet.debited", amount=command.amount, balance=wallet.balance)
        return wallet.balance

    @handle(ReconcileWallet)
    def reconcile_wallet(self, command):
        repo = current_domain.repository_for(Wallet)
        wallet = repo.get_wallet(command.user_id)
        correction = wallet.reconcile()
        repo.add(wallet)

        if correction is not None:
            logger.warning(
                "wallet.balance_corrected",
                user_id=str(wallet.user_id),
                correction=correction.amount,
            )
        return wallet.balance


def wallet_balance(user_id) -> dict:
    """Balance and transactions (oldest first) of a user's wallet.

    Users without a wallet read as an empty one; nothing is created.
    """
    wallet = current_domain.repository_for(Wallet).find_wallet(user_id)
    if wallet is None:
        return {"balance": 0.0, "transactions": []}

    return {
        "balance": wallet.balance,
        "transactions": [
            {
                "id": str(txn.id),
                "type": txn.transaction_type,
                "amount": txn.amount,
                "description": txn.description,
                "occurred_at": txn.occurred_at,
            }
            for txn in wallet.statement()
        ],
    }
