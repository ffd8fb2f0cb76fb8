"""Address directory port.

Addresses are owned by the customer-profile service; the commerce core only
needs to know who an address belongs to before shipping an order to it.
"""

from abc import ABC, abstractmethod


class AddressDirectory(ABC):
    """Abstract address lookup."""

    @abstractmethod
    def owner_of(self, address_id: str) -> str | None:
        """Return the id of the user owning the address, or None if unknown."""
        ...

    def belongs_to(self, address_id: str, user_id: str) -> bool:
        owner = self.owner_of(str(address_id))
        return owner is not None and owner == str(user_id)
