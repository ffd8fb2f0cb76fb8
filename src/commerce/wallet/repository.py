"""Repository for the Wallet aggregate.

``get_or_create_wallet`` is the only place a wallet comes into existence.
"""

from protean.exceptions import ObjectNotFoundError

from commerce.domain import commerce
from commerce.errors import WalletNotFound
from commerce.wallet.wallet import Wallet


@commerce.repository(part_of=Wallet)
class WalletRepository:
    def find_wallet(self, user_id) -> Wallet | None:
        try:
            return self.get(str(user_id))
        except ObjectNotFoundError:
            return None

    def get_wallet(self, user_id) -> Wallet:
        wallet = self.find_wallet(user_id)
        if wallet is None:
            raise WalletNotFound("Wallet not found", user_id=str(user_id))
        return wallet

    def get_or_create_wallet(self, user_id) -> Wallet:
        """Return the user's wallet, opening an empty one if there is none.

        A freshly opened wallet is not persisted until the caller adds it.
        """
        return self.find_wallet(user_id) or Wallet.open(user_id)
