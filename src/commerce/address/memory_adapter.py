"""In-memory address directory for development and testing."""

from commerce.address.port import AddressDirectory


class InMemoryAddressDirectory(AddressDirectory):
    def __init__(self) -> None:
        self._owners: dict[str, str] = {}

    def register(self, address_id: str, user_id: str) -> None:
        self._owners[str(address_id)] = str(user_id)

    def forget(self, address_id: str) -> None:
        self._owners.pop(str(address_id), None)

    def owner_of(self, address_id: str) -> str | None:
        return self._owners.get(str(address_id))
