"""Address directory factory.

Provides get_address_directory() / set_address_directory() to swap
implementations. Defaults to the in-memory directory.
"""

from commerce.address.memory_adapter import InMemoryAddressDirectory
from commerce.address.port import AddressDirectory

_current_directory: AddressDirectory | None = None


def get_address_directory() -> AddressDirectory:
    """Return the current address directory. Defaults to InMemoryAddressDirectory."""
    global _current_directory
    if _current_directory is None:
        _current_directory = InMemoryAddressDirectory()
    return _current_directory


def set_address_directory(directory: AddressDirectory) -> None:
    """Override the active address directory (useful for tests and wiring)."""
    global _current_directory
    _current_directory = directory


def reset_address_directory() -> None:
    """Reset to the default directory."""
    global _current_directory
    _current_directory = None
