"""Wallet statement — per-user feed of wallet activity with running balance."""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.wallet.events import WalletCredited, WalletDebited, WalletReconciled
from commerce.wallet.wallet import Wallet


@commerce.projection
class WalletStatementLine:
    entry_id = Identifier(identifier=True, required=True)
    user_id = Identifier(required=True)
    entry_type = String(required=True, max_length=20)
    amount = Float(required=True)
    balance_after = Float(required=True)
    description = String(max_length=500)
    occurred_at = DateTime(required=True)


@commerce.projector(projector_for=WalletStatementLine, aggregates=[Wallet])
class WalletStatementProjector:
    @on(WalletCredited)
    def on_wallet_credited(self, event):
        _add_line(event.user_id, "credit", event.amount, event.balance, event.description, event.occurred_at)

    @on(WalletDebited)
    def on_wallet_debited(self, event):
        _add_line(event.user_id, "debit", -event.amount, event.balance, event.description, event.occurred_at)

    @on(WalletReconciled)
    def on_wallet_reconciled(self, event):
        if not event.correction_amount:
            return
        _add_line(
            event.user_id,
            "correction",
            event.correction_amount,
            event.balance,
            "Balance correction",
            event.occurred_at,
        )


def _add_line(user_id, entry_type, amount, balance_after, description, occurred_at):
    current_domain.repository_for(WalletStatementLine).add(
        WalletStatementLine(
            entry_id=str(uuid.uuid4()),
            user_id=user_id,
            entry_type=entry_type,
            amount=amount,
            balance_after=balance_after,
            description=description,
            occurred_at=occurred_at,
        )
    )


def statement_for(user_id) -> list:
    lines = current_domain.repository_for(WalletStatementLine)._dao.query.filter(user_id=str(user_id)).all().items
    return sorted(lines, key=lambda line: line.occurred_at)
