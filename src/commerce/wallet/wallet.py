"""Wallet aggregate — a user's store-credit ledger.

The wallet is an append-only log of transactions plus a cached ``balance``.
The cache always moves together with the log:

    balance == Σ credit − Σ debit + Σ correction

``reconcile()`` rebuilds the cache from the log, which is how balances that
were corrupted outside the ledger get repaired.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, String

from commerce import config
from commerce.domain import commerce
from commerce.errors import InsufficientBalance, InvalidAmount
from commerce.wallet.events import WalletCredited, WalletDebited, WalletOpened, WalletReconciled


class TransactionType(Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    CORRECTION = "correction"


_SIGN = {
    TransactionType.CREDIT.value: 1,
    TransactionType.DEBIT.value: -1,
    TransactionType.CORRECTION.value: 1,
}


@commerce.entity(part_of="Wallet")
class WalletTransaction:
    transaction_type = String(required=True, choices=TransactionType)
    amount = Float(required=True, min_value=0.0)
    description = String(max_length=500)
    occurred_at = DateTime(required=True)

    @property
    def signed_amount(self):
        return _SIGN[self.transaction_type] * self.amount


@commerce.aggregate
class Wallet:
    user_id = Identifier(identifier=True, required=True)
    balance = Float(default=0.0)
    transactions = HasMany(WalletTransaction)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, user_id):
        now = datetime.now(UTC)
        wallet = cls(user_id=user_id, balance=0.0, created_at=now, updated_at=now)
        wallet.raise_(WalletOpened(user_id=str(wallet.user_id), opened_at=now))
        return wallet

    # -------------------------------------------------------------------
    # Ledger entries
    # -------------------------------------------------------------------
    def credit(self, amount, description=None):
        amount = self._validated_amount(amount, config.MAX_WALLET_CREDIT, "credit")

        txn = self._append(TransactionType.CREDIT, amount, description)
        self.raise_(
            WalletCredited(
                user_id=str(self.user_id),
                transaction_id=str(txn.id),
                amount=amount,
                description=description,
                balance=self.balance,
                occurred_at=txn.occurred_at,
            )
        )
        return txn

    def debit(self, amount, description=None):
        amount = self._validated_amount(amount, config.MAX_WALLET_DEBIT, "debit")
        if self.balance < amount:
            raise InsufficientBalance(
                "Insufficient wallet balance",
                user_id=str(self.user_id),
                balance=self.balance,
                requested=amount,
            )

        txn = self._append(TransactionType.DEBIT, amount, description)
        self.raise_(
            WalletDebited(
                user_id=str(self.user_id),
                transaction_id=str(txn.id),
                amount=amount,
                description=description,
                balance=self.balance,
                occurred_at=txn.occurred_at,
            )
        )
        return txn

    def reconcile(self):
        """Recompute the balance from the log; clamp a negative result to zero.

        Returns the correction transaction if one had to be appended.
        """
        previous = self.balance
        computed = self.ledger_balance()
        correction = None
        now = datetime.now(UTC)

        if computed < 0:
            correction = WalletTransaction(
                transaction_type=TransactionType.CORRECTION.value,
                amount=round(-computed, 2),
                description="Balance correction",
                occurred_at=now,
            )
            self.add_transactions(correction)
            computed = 0.0

        self.balance = computed
        self.updated_at = now

        self.raise_(
            WalletReconciled(
                user_id=str(self.user_id),
                previous_balance=previous or 0.0,
                balance=self.balance,
                correction_amount=correction.amount if correction else 0.0,
                transaction_id=str(correction.id) if correction else None,
                occurred_at=now,
            )
        )
        return correction

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def ledger_balance(self):
        return round(sum(txn.signed_amount for txn in self.transactions), 2)

    def statement(self):
        """Transactions oldest first."""
        return sorted(self.transactions, key=lambda txn: txn.occurred_at)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _validated_amount(self, amount, ceiling, verb):
        if amount is None:
            raise InvalidAmount(f"Invalid {verb} amount", amount=amount)
        requested = amount
        amount = round(float(amount), 2)
        if amount <= 0:
            raise InvalidAmount(f"Invalid {verb} amount", amount=requested)
        if amount > ceiling:
            raise InvalidAmount(
                f"Amount exceeds maximum {verb} limit of {ceiling:g}",
                amount=amount,
                limit=ceiling,
            )
        return amount

    def _append(self, transaction_type, amount, description):
        now = datetime.now(UTC)
        txn = WalletTransaction(
            transaction_type=transaction_type.value,
            amount=amount,
            description=description,
            occurred_at=now,
        )
        self.add_transactions(txn)
        self.balance = round((self.balance or 0.0) + _SIGN[transaction_type.value] * amount, 2)
        self.updated_at = now
        return txn
