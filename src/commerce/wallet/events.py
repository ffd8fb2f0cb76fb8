from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="Wallet")
class WalletOpened:
    __version__ = 1

    user_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@commerce.event(part_of="Wallet")
class WalletCredited:
    __version__ = 1

    user_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    amount = Float(required=True)
    description = String()
    balance = Float(required=True)
    occurred_at = DateTime(required=True)


@commerce.event(part_of="Wallet")
class WalletDebited:
    __version__ = 1

    user_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    amount = Float(required=True)
    description = String()
    balance = Float(required=True)
    occurred_at = DateTime(required=True)


@commerce.event(part_of="Wallet")
class WalletReconciled:
    """Balance was recomputed from the transaction log.

    ``correction_amount`` is zero unless a negative balance had to be
    brought back to zero with a correction entry.
    """

    __version__ = 1

    user_id = Identifier(required=True)
    previous_balance = Float(required=True)
    balance = Float(required=True)
    correction_amount = Float(default=0.0)
    transaction_id = Identifier()
    occurred_at = DateTime(required=True)
