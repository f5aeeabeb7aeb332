"""Item takedown with cascading order cancellation."""

import logging
from dataclasses import dataclass

from .domain import Item
from .inventory import InventoryManager
from .orders import OrderLifecycleManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TakedownResult:
    item: Item
    canceled_count: int


class CascadeCoordinator:
    """Deactivates an item and cancels every live order referencing it.

    This is an administrative bulk action: callers authenticate the admin
    beforehand and the per-order authorization check is skipped. Each
    canceled order gives back exactly its own quantity, so the total
    restored equals the sum of the live orders' quantities.
    """

    def __init__(self, inventory: InventoryManager, orders: OrderLifecycleManager):
        self.inventory = inventory
        self.orders = orders

    def deactivate_item_and_cascade(self, item_id: int) -> TakedownResult:
        item = self.inventory.deactivate(item_id)
        live = [o for o in self.orders.list_orders() if o.item_id == item.id and not o.is_canceled]
        for order in live:
            self.orders.force_cancel(order)
        logger.info("item taken down", extra={"item_id": item.id, "canceled_orders": len(live)})
        return TakedownResult(item=item, canceled_count=len(live))
