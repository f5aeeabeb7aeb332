# Shared fixtures: an in-memory store, a cheap bcrypt hasher and a seeded service
import pytest
from decimal import Decimal

from marketplace.adapters import BcryptPasswordHasher
from marketplace.domain import Item, Snapshot
from marketplace.providers import reset_marketplace_service
from marketplace.repository import InMemoryDocumentStore
from marketplace.service import MarketplaceService

ADMIN_PASSWORD = "admin-pass"
ALICE_PASSWORD = "alice-pass"


@pytest.fixture(autouse=True)
def use_memory_store(monkeypatch):
    monkeypatch.setenv("MARKETPLACE_STORE", "memory")
    monkeypatch.setenv("MARKETPLACE_BCRYPT_ROUNDS", "4")
    reset_marketplace_service()
    yield
    reset_marketplace_service()


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def service(store, hasher):
    return MarketplaceService(store, hasher=hasher)


@pytest.fixture
def admin(service):
    service.create_account("admin", ADMIN_PASSWORD, "Site Admin")
    return ("admin", ADMIN_PASSWORD)


@pytest.fixture
def alice(service):
    service.create_account("alice", ALICE_PASSWORD, "Alice Smith")
    return ("alice", ALICE_PASSWORD)


@pytest.fixture
def widget(service, admin):
    """Item {id: 1, name: Widget, price: 10.00, stock: 5}."""
    return service.admin_create_item(*admin, name="Widget", price="10.00", stock=5)


@pytest.fixture
def stock_of(service):
    """Current stock of an item, read through the store."""

    def _stock(item_id):
        with service.store.read() as snap:
            return snap.find_item(item_id).stock

    return _stock


@pytest.fixture
def snapshot():
    """A bare snapshot with one active and one taken-down item."""
    return Snapshot(
        items=[
            Item(id=1, name="Widget", price=Decimal("10.00"), stock=5),
            Item(id=2, name="Retired", price=Decimal("3.50"), stock=4, active=False),
        ]
    )
