"""Marketplace service: the operation surface used by the HTTP layer.

Every operation runs in exactly one store transaction (or a read view for
queries): the snapshot is loaded under the store lock, the managers apply
the rules to it, and it is saved only if nothing raised. Admin operations
authenticate against the same snapshot before touching anything.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional

from .accounts import AccountManager
from .adapters import BcryptPasswordHasher, SnapshotCredentialVerifier
from .authorization import AuthorizationResolver
from .cascade import CascadeCoordinator, TakedownResult
from .domain import Account, DocumentStore, Item, Order, Snapshot
from .exceptions import InvalidInput
from .inventory import InventoryManager
from .orders import OrderLifecycleManager

logger = logging.getLogger(__name__)


def _as_id(value, what: str) -> int:
    if isinstance(value, bool) or value is None or value == "":
        raise InvalidInput(f"{what} required")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidInput(f"invalid {what}: {value!r}")


def _as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidInput(f"invalid arrival date: {value!r}")
    text = value.strip()
    if not text:
        return None
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidInput(f"invalid arrival date: {value!r}")


@dataclass
class _Unit:
    """Managers bound to the snapshot of one operation."""

    snapshot: Snapshot
    inventory: InventoryManager
    orders: OrderLifecycleManager
    accounts: AccountManager
    auth: AuthorizationResolver
    cascade: CascadeCoordinator


class MarketplaceService:
    """Entry point for every marketplace operation.

    Args:
        store: Document store holding the snapshot.
        hasher: Password hasher; defaults to bcrypt with cost 12.
        owner_requires_secret: Whether account owners must give their
            password to cancel their own orders.
    """

    def __init__(
        self,
        store: DocumentStore,
        hasher: Optional[BcryptPasswordHasher] = None,
        owner_requires_secret: bool = True,
    ):
        self.store = store
        self.hasher = hasher or BcryptPasswordHasher()
        self.owner_requires_secret = owner_requires_secret

    def _bind(self, snapshot: Snapshot) -> _Unit:
        inventory = InventoryManager(snapshot)
        orders = OrderLifecycleManager(snapshot, inventory)
        return _Unit(
            snapshot=snapshot,
            inventory=inventory,
            orders=orders,
            accounts=AccountManager(snapshot, self.hasher),
            auth=AuthorizationResolver(
                SnapshotCredentialVerifier(snapshot, self.hasher),
                owner_requires_secret=self.owner_requires_secret,
            ),
            cascade=CascadeCoordinator(inventory, orders),
        )

    @contextmanager
    def _write(self) -> Iterator[_Unit]:
        with self.store.transaction() as snapshot:
            yield self._bind(snapshot)

    @contextmanager
    def _read(self) -> Iterator[_Unit]:
        with self.store.read() as snapshot:
            yield self._bind(snapshot)

    # ---- Queries ----
    def list_active_items(self) -> List[Item]:
        with self._read() as u:
            return u.inventory.active_items()

    def list_orders(self) -> List[Order]:
        with self._read() as u:
            return u.orders.list_orders()

    # ---- Orders ----
    def place_order(
        self,
        principal: Optional[str],
        item_id,
        quantity=1,
        guest_full_name: Optional[str] = None,
    ) -> Order:
        item_id = _as_id(item_id, "itemId")
        with self._write() as u:
            return u.orders.place_order(principal, item_id, quantity, guest_full_name)

    def cancel_order(
        self,
        order_id,
        principal: Optional[str] = None,
        secret: Optional[str] = None,
        token: Optional[str] = None,
    ) -> Order:
        order_id = _as_id(order_id, "orderId")
        with self._write() as u:
            order = u.orders.get_order(order_id)
            decision = u.auth.decide_cancel(principal, secret, token, order)
            return u.orders.cancel(order_id, decision)

    # ---- Admin ----
    def admin_update_stock(self, admin: str, secret: str, item_id, new_stock) -> Item:
        item_id = _as_id(item_id, "itemId")
        with self._write() as u:
            u.auth.require_admin(admin, secret)
            return u.inventory.set_stock(item_id, new_stock)

    def admin_set_arrival(self, admin: str, secret: str, order_id, arrival_date=None) -> Order:
        order_id = _as_id(order_id, "orderId")
        arrival = _as_date(arrival_date)
        with self._write() as u:
            u.auth.require_admin(admin, secret)
            return u.orders.set_arrival(order_id, arrival)

    def admin_create_item(
        self,
        admin: str,
        secret: str,
        name: str,
        description: str = "",
        price=0,
        stock=0,
        image: str = "",
    ) -> Item:
        with self._write() as u:
            u.auth.require_admin(admin, secret)
            return u.inventory.create_item(name, description, price, stock, image)

    def admin_takedown_item(self, admin: str, secret: str, item_id) -> TakedownResult:
        item_id = _as_id(item_id, "itemId")
        with self._write() as u:
            u.auth.require_admin(admin, secret)
            return u.cascade.deactivate_item_and_cascade(item_id)

    # ---- Accounts ----
    def create_account(self, username: str, password: str, full_name: Optional[str] = None) -> Account:
        with self._write() as u:
            return u.accounts.create_or_login(username, password, full_name)

    def get_wishlist(self, principal: Optional[str], secret: Optional[str]) -> List[int]:
        with self._read() as u:
            return u.accounts.get_wishlist(principal, secret)

    def set_wishlist(self, principal: Optional[str], secret: Optional[str], item_ids: Iterable) -> List[int]:
        with self._write() as u:
            return u.accounts.set_wishlist(principal, secret, item_ids)
