"""Inventory manager: items and their stock.

Stock only moves through ``reserve`` (order placed), ``restore`` (order
canceled) and the ``set_stock`` admin override. Every check runs before the
mutation, so a rejected call leaves the item untouched.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from .domain import Item, Snapshot
from .exceptions import InsufficientStock, InvalidInput, InvalidQuantity, ItemNotFound

logger = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_price(value) -> Decimal:
    """Parse a non-negative price; raise InvalidInput otherwise."""
    if isinstance(value, bool):
        raise InvalidInput("price must be a number")
    try:
        price = Decimal(str(value if value is not None else 0))
    except InvalidOperation:
        raise InvalidInput("price must be a number")
    if not price.is_finite() or price < 0:
        raise InvalidInput("price must be a non-negative number")
    return price


def parse_stock(value) -> int:
    """Parse a non-negative integer stock level; raise InvalidInput otherwise."""
    if value is None:
        return 0
    if _is_int(value):
        stock = value
    elif isinstance(value, str) and value.strip().isdigit():
        stock = int(value.strip())
    else:
        raise InvalidInput("stock must be a non-negative integer")
    if stock < 0:
        raise InvalidInput("stock must be a non-negative integer")
    return stock


class InventoryManager:
    """Owns the items of one snapshot."""

    def __init__(self, snapshot: Snapshot):
        self.snapshot = snapshot

    def active_items(self) -> List[Item]:
        return sorted((i for i in self.snapshot.items if i.active), key=lambda i: i.id)

    def get_item(self, item_id: int) -> Item:
        item = self.snapshot.find_item(item_id)
        if item is None:
            raise ItemNotFound(f"item {item_id} not found")
        return item

    def create_item(self, name: str, description: str = "", price=0, stock=0, image: str = "") -> Item:
        """Create an active item with the next free id.

        Raises:
            InvalidInput: If ``name`` is blank, ``price`` is not a
                non-negative number or ``stock`` not a non-negative integer.
        """
        if not name or not str(name).strip():
            raise InvalidInput("item name required")
        item = Item(
            id=self.snapshot.next_item_id(),
            name=str(name).strip(),
            description=description or "",
            price=parse_price(price),
            stock=parse_stock(stock),
            image=image or "",
        )
        self.snapshot.items.append(item)
        logger.info("item created", extra={"item_id": item.id, "stock": item.stock})
        return item

    def reserve(self, item_id: int, quantity) -> Item:
        """Take ``quantity`` units of an active item out of stock.

        Raises:
            InvalidQuantity: If quantity is not a positive integer.
            ItemNotFound: If there is no active item with that id.
            InsufficientStock: If fewer than ``quantity`` units remain.
        """
        if not _is_int(quantity) or quantity <= 0:
            raise InvalidQuantity()
        item = self.snapshot.find_item(item_id)
        if item is None or not item.active:
            raise ItemNotFound(f"item {item_id} not found")
        if item.stock < quantity:
            raise InsufficientStock(f"only {item.stock} of '{item.name}' left, {quantity} requested")
        item.stock -= quantity
        return item

    def restore(self, item_id: int, quantity: int) -> Optional[Item]:
        """Put ``quantity`` units back; a vanished item is a no-op."""
        item = self.snapshot.find_item(item_id)
        if item is None:
            logger.warning("restore skipped, item missing", extra={"item_id": item_id, "quantity": quantity})
            return None
        item.stock += quantity
        return item

    def set_stock(self, item_id: int, new_stock) -> Item:
        """Admin override: replace the stock level unconditionally."""
        stock = parse_stock(new_stock)
        item = self.get_item(item_id)
        old, item.stock = item.stock, stock
        logger.info("stock overridden", extra={"item_id": item_id, "old_stock": old, "new_stock": stock})
        return item

    def deactivate(self, item_id: int) -> Item:
        item = self.get_item(item_id)
        item.active = False
        return item
