"""Order lifecycle manager.

Creates orders against the inventory (reserve or reject, nothing in
between), moves them between ``processing`` and ``scheduled`` and cancels
them, giving the reserved stock back.
"""

import logging
import secrets
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from .authorization import AuthDecision
from .domain import GUEST, Order, OrderStatus, Snapshot, is_guest, utcnow
from .exceptions import AlreadyCanceled, InvalidInput, NotAuthorized, OrderNotFound
from .inventory import InventoryManager

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
TOKEN_LENGTH = 24
CENTS = Decimal("0.01")


def generate_cancel_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class OrderLifecycleManager:
    """Order operations over one snapshot.

    Args:
        snapshot: The snapshot loaded for the current operation.
        inventory: Inventory manager over the same snapshot.
    """

    def __init__(self, snapshot: Snapshot, inventory: InventoryManager):
        self.snapshot = snapshot
        self.inventory = inventory

    def list_orders(self) -> List[Order]:
        return sorted(self.snapshot.orders, key=lambda o: o.id)

    def get_order(self, order_id: int) -> Order:
        order = self.snapshot.find_order(order_id)
        if order is None:
            raise OrderNotFound(f"order {order_id} not found")
        return order

    def _mint_token(self) -> str:
        taken = {o.cancel_token for o in self.snapshot.orders if o.cancel_token}
        token = generate_cancel_token()
        while token in taken:
            token = generate_cancel_token()
        return token

    def place_order(
        self,
        principal: Optional[str],
        item_id: int,
        quantity=1,
        guest_full_name: Optional[str] = None,
    ) -> Order:
        """Reserve stock and record a new ``processing`` order.

        Args:
            principal: Account name, or None/``guest`` for a guest purchase.
            item_id: Item to buy.
            quantity: Units to reserve (positive integer).
            guest_full_name: Buyer name, mandatory for guests.

        Returns:
            The created Order.

        Raises:
            InvalidInput: If a guest did not give a full name of 2+ characters.
            InvalidQuantity, ItemNotFound, InsufficientStock: From the
                inventory reservation; nothing is changed in that case.
        """
        token = None
        if is_guest(principal):
            buyer_name = (guest_full_name or "").strip()
            if len(buyer_name) < 2:
                raise InvalidInput("full name required for guest purchases")
            username = GUEST
        else:
            account = self.snapshot.find_account(principal)
            if account is not None:
                username = account.username
                buyer_name = account.full_name or account.username
            else:
                username = buyer_name = principal.strip()

        item = self.inventory.reserve(item_id, quantity)
        if username == GUEST:
            token = self._mint_token()

        order = Order(
            id=self.snapshot.next_order_id(),
            item_id=item.id,
            item_name=item.name,
            username=username,
            buyer_name=buyer_name,
            quantity=quantity,
            amount=(item.price * quantity).quantize(CENTS, rounding=ROUND_HALF_UP),
            cancel_token=token,
        )
        self.snapshot.orders.append(order)
        logger.info(
            "order placed",
            extra={"order_id": order.id, "item_id": item.id, "quantity": quantity, "guest": token is not None},
        )
        return order

    def set_arrival(self, order_id: int, arrival_date: Optional[date]) -> Order:
        """Schedule (date given) or unschedule (None) a live order.

        Raises:
            OrderNotFound: If the order does not exist.
            AlreadyCanceled: If the order is canceled, which is terminal.
        """
        order = self.get_order(order_id)
        if order.is_canceled:
            raise AlreadyCanceled("cannot schedule a canceled order")
        order.arrival_date = arrival_date
        order.status = OrderStatus.SCHEDULED if arrival_date else OrderStatus.PROCESSING
        logger.info("order arrival updated", extra={"order_id": order.id, "status": order.status.value})
        return order

    def cancel(self, order_id: int, decision: AuthDecision) -> Order:
        """Cancel an order and restore its reserved stock.

        Raises:
            OrderNotFound: If the order does not exist.
            AlreadyCanceled: If it was canceled before; stock is not restored twice.
            NotAuthorized: If ``decision`` does not permit the cancellation.
        """
        order = self.get_order(order_id)
        if order.is_canceled:
            raise AlreadyCanceled()
        if not decision.permitted:
            logger.warning("cancellation denied", extra={"order_id": order.id})
            raise NotAuthorized(decision.reason)
        self.force_cancel(order)
        logger.info("order canceled", extra={"order_id": order.id, "path": decision.path})
        return order

    def force_cancel(self, order: Order) -> None:
        """Cancel without an authorization check; callers vouch for it."""
        self.inventory.restore(order.item_id, order.quantity)
        order.status = OrderStatus.CANCELED
        order.canceled_at = utcnow()
