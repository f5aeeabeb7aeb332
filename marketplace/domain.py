"""Domain models and ports for the marketplace.

This module contains the dataclasses used for accounts, items and orders,
the snapshot that bundles them for one operation, and the protocol
definitions (ports) for the collaborators the core depends on: the
document store and the credential verifier.

Entities know how to map themselves to and from the persisted document
layout (camelCase keys, decimals as strings, ISO 8601 dates) so every store
adapter shares one format.
"""

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


GUEST = "guest"
ADMIN = "admin"

ACCOUNT_KEYS = ("username", "fullName", "createdAt", "isAdmin", "passwordHash", "wishlist")
ITEM_KEYS = ("id", "name", "description", "price", "stock", "image", "active", "createdAt")
ORDER_KEYS = (
    "id", "itemId", "itemName", "username", "buyerName", "quantity", "amount",
    "status", "arrivalDate", "cancelToken", "createdAt", "canceledAt",
)


def normalize_principal(name: Optional[str]) -> str:
    """Return the case-insensitive form of a principal name."""
    return (name or "").strip().lower()


def is_guest(name: Optional[str]) -> bool:
    """True for an absent, blank or ``guest`` principal."""
    return normalize_principal(name) in ("", GUEST)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _unknown(doc: dict, known: tuple) -> dict:
    return {k: v for k, v in doc.items() if k not in known}


# ---- Enums ----
class OrderStatus(str, Enum):
    """Enumeration of the possible order statuses.

    ``canceled`` is terminal; ``processing`` and ``scheduled`` switch back
    and forth as the arrival date is set or cleared.
    """

    PROCESSING = "processing"
    SCHEDULED = "scheduled"
    CANCELED = "canceled"


# ---- Entities ----
@dataclass
class Account:
    """A registered buyer.

    Attributes:
        username: Login name, unique case-insensitively.
        full_name: Display name used as buyer name on orders.
        created_at: Creation timestamp (UTC).
        is_admin: True iff the username normalizes to ``admin``.
        credential_handle: Opaque credential (a bcrypt hash) checked by the
            credential verifier. Never exposed to clients.
        wishlist: Item ids, deduplicated, first-seen order.
        extra: Document keys this model does not use (e.g. an employee
            ``role``), written back unchanged.
    """

    username: str
    full_name: str = ""
    created_at: datetime = field(default_factory=utcnow)
    is_admin: bool = False
    credential_handle: Optional[str] = None
    wishlist: List[int] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return normalize_principal(self.username)

    def to_document(self) -> dict:
        return {
            **self.extra,
            "username": self.username,
            "fullName": self.full_name,
            "createdAt": _iso(self.created_at),
            "isAdmin": self.is_admin,
            "passwordHash": self.credential_handle,
            "wishlist": list(self.wishlist),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Account":
        return cls(
            username=doc["username"],
            full_name=doc.get("fullName") or "",
            created_at=_dt(doc.get("createdAt")) or utcnow(),
            is_admin=bool(doc.get("isAdmin", False)),
            credential_handle=doc.get("passwordHash"),
            wishlist=[int(i) for i in doc.get("wishlist") or []],
            extra=_unknown(doc, ACCOUNT_KEYS),
        )


@dataclass
class Item:
    """A sellable item.

    Attributes:
        id: Positive integer identifier.
        name: Display name.
        description: Free text.
        price: Unit price, non-negative.
        stock: Units available, never negative.
        image: Image URL or data URI, may be empty.
        active: False once the item has been taken down (terminal).
        created_at: Creation timestamp (UTC).
        extra: Unmodelled document keys, written back unchanged.
    """

    id: int
    name: str
    description: str = ""
    price: Decimal = Decimal("0")
    stock: int = 0
    image: str = ""
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict:
        return {
            **self.extra,
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "stock": self.stock,
            "image": self.image,
            "active": self.active,
            "createdAt": _iso(self.created_at),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Item":
        return cls(
            id=int(doc["id"]),
            name=doc["name"],
            description=doc.get("description") or "",
            price=Decimal(str(doc.get("price", 0))),
            stock=int(doc.get("stock") or 0),
            image=doc.get("image") or "",
            # a missing flag means active (older data files)
            active=doc.get("active") is not False,
            created_at=_dt(doc.get("createdAt")) or utcnow(),
            extra=_unknown(doc, ITEM_KEYS),
        )


@dataclass
class Order:
    """An order reserving ``quantity`` units of one item.

    Attributes:
        id: Positive integer identifier.
        item_id: Referenced item.
        item_name: Item name captured at creation time.
        username: Owning account name, or ``guest``.
        buyer_name: Display name of the buyer.
        quantity: Reserved units, at least 1.
        amount: ``price * quantity`` quantized to cents at creation; never
            recomputed.
        status: Current OrderStatus.
        arrival_date: Scheduled arrival, or None.
        cancel_token: Guest cancellation capability; present iff the order
            belongs to ``guest``.
        created_at: Creation timestamp (UTC).
        canceled_at: Cancellation timestamp, or None.
        extra: Unmodelled document keys, written back unchanged.
    """

    id: int
    item_id: int
    item_name: str
    username: str
    buyer_name: str
    quantity: int
    amount: Decimal
    status: OrderStatus = OrderStatus.PROCESSING
    arrival_date: Optional[date] = None
    cancel_token: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    canceled_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_guest(self) -> bool:
        return is_guest(self.username)

    @property
    def is_canceled(self) -> bool:
        return self.status == OrderStatus.CANCELED

    def to_document(self) -> dict:
        doc = {
            **self.extra,
            "id": self.id,
            "itemId": self.item_id,
            "itemName": self.item_name,
            "username": self.username,
            "buyerName": self.buyer_name,
            "quantity": self.quantity,
            "amount": str(self.amount),
            "status": self.status.value,
            "arrivalDate": _iso(self.arrival_date),
            "createdAt": _iso(self.created_at),
            "canceledAt": _iso(self.canceled_at),
        }
        if self.cancel_token is not None:
            doc["cancelToken"] = self.cancel_token
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "Order":
        arrival = doc.get("arrivalDate")
        return cls(
            id=int(doc["id"]),
            item_id=int(doc["itemId"]),
            item_name=doc.get("itemName") or "",
            username=doc.get("username") or GUEST,
            buyer_name=doc.get("buyerName") or "",
            quantity=int(doc["quantity"]),
            amount=Decimal(str(doc.get("amount", 0))),
            status=OrderStatus(doc.get("status", OrderStatus.PROCESSING.value)),
            # older files may hold a full timestamp; keep the date part
            arrival_date=date.fromisoformat(arrival[:10]) if arrival else None,
            cancel_token=doc.get("cancelToken"),
            created_at=_dt(doc.get("createdAt")) or utcnow(),
            canceled_at=_dt(doc.get("canceledAt")),
            extra=_unknown(doc, ORDER_KEYS),
        )


@dataclass
class Snapshot:
    """Full copy of accounts, items and orders for one operation.

    Top-level keys other than the three collections are kept in ``extra``.
    """

    accounts: List[Account] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def find_account(self, username: Optional[str]) -> Optional[Account]:
        key = normalize_principal(username)
        if not key:
            return None
        return next((a for a in self.accounts if a.key == key), None)

    def find_item(self, item_id: int) -> Optional[Item]:
        return next((i for i in self.items if i.id == item_id), None)

    def find_order(self, order_id: int) -> Optional[Order]:
        return next((o for o in self.orders if o.id == order_id), None)

    def next_item_id(self) -> int:
        return max((i.id for i in self.items), default=0) + 1

    def next_order_id(self) -> int:
        return max((o.id for o in self.orders), default=0) + 1

    def to_document(self) -> dict:
        return {
            **self.extra,
            "accounts": [a.to_document() for a in self.accounts],
            "items": [i.to_document() for i in self.items],
            "orders": [o.to_document() for o in self.orders],
        }

    @classmethod
    def from_document(cls, doc: Optional[dict]) -> "Snapshot":
        doc = doc or {}
        return cls(
            accounts=[Account.from_document(d) for d in doc.get("accounts") or []],
            items=[Item.from_document(d) for d in doc.get("items") or []],
            orders=[Order.from_document(d) for d in doc.get("orders") or []],
            extra=_unknown(doc, ("accounts", "items", "orders")),
        )


# ---- Ports (DIP) ----
class DocumentStore(Protocol):
    """Port describing the snapshot store used by the service.

    ``transaction`` is the only way to mutate: it yields a fresh snapshot
    and persists it when the block exits cleanly. Implementations serialize
    transactions so no two read-modify-write cycles interleave.
    """

    def load(self) -> Snapshot:
        """Return a fresh, independent snapshot."""
        raise NotImplementedError()

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored snapshot."""
        raise NotImplementedError()

    def transaction(self) -> AbstractContextManager:
        """Serialized load-mutate-save cycle yielding a Snapshot."""
        raise NotImplementedError()

    def read(self) -> AbstractContextManager:
        """Serialized read-only view yielding a Snapshot."""
        raise NotImplementedError()


class CredentialVerifier(Protocol):
    """Port deciding whether a secret matches a principal's credential."""

    def verify(self, principal: str, secret: Optional[str]) -> bool:
        """Return True when ``secret`` is the principal's credential.

        Unknown principals and empty secrets must return False, never raise.
        """
        raise NotImplementedError()
