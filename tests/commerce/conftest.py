import pytest
from protean.integrations.pytest import DomainFixture

from commerce.address import get_address_directory, reset_address_directory


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _addresses():
    """Known addresses: addr-001 belongs to user-001, addr-002 to user-002."""
    directory = get_address_directory()
    directory.register("addr-001", "user-001")
    directory.register("addr-002", "user-002")
    yield directory
    reset_address_directory()


@pytest.fixture()
def books():
    """Three products: book-001 (200.0 x5), book-002 (300.0 x5), book-003 (100.0 x1)."""
    from commerce import services

    services.register_product("book-001", "Dune", 200.0, quantity=5)
    services.register_product("book-002", "Emma", 300.0, quantity=5)
    services.register_product("book-003", "Ulysses", 100.0, quantity=1)
    return ["book-001", "book-002", "book-003"]
