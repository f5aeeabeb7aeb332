"""Pydantic schemas for the marketplace HTTP API.

Request DTOs accept the camelCase field names the web client has always
sent (``itemId``, ``buyerFullName``, ``cancelToken``...) as well as the
snake_case names. Business validation (quantities, stock levels, names)
stays in the domain managers so the HTTP API and direct callers get the
same errors; the DTOs only check shapes and types. Ids, quantities, stock
and prices are passed through as sent (``Any``): lax coercion would turn
``true`` into ``1``, so the service and managers validate them instead.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .domain import OrderStatus


class _In(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Out(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---- Requests ----
class CreateAccountDTO(_In):
    """Signup-or-login payload.

    Attributes:
        username: Account name (case-insensitive).
        password: Password, at least 4 characters.
        full_name: Required only when the account does not exist yet.
    """

    username: str
    password: str
    full_name: Optional[str] = None


class PlaceOrderDTO(_In):
    """Order payload; ``username`` defaults to ``guest``.

    Attributes:
        username: Buyer account, or ``guest``.
        buyer_full_name: Full name, mandatory for guests.
        item_id: Item to buy.
        quantity: Units to reserve.
    """

    username: Optional[str] = "guest"
    buyer_full_name: Optional[str] = None
    item_id: Any
    quantity: Any = 1


class CancelOrderDTO(_In):
    """Cancellation payload: admin or owner credentials, or a guest token."""

    order_id: Any
    username: Optional[str] = None
    password: Optional[str] = None
    cancel_token: Optional[str] = None


class AdminDTO(_In):
    """Admin credentials carried by every admin request."""

    username: str = ""
    password: str = ""


class UpdateStockDTO(AdminDTO):
    item_id: Any
    new_stock: Any


class UpdateArrivalDTO(AdminDTO):
    order_id: Any
    arrival_date: Optional[date] = None

    @field_validator("arrival_date", mode="before")
    @classmethod
    def blank_means_unscheduled(cls, v):
        """Treat an empty string as clearing the arrival date."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CreateItemDTO(AdminDTO):
    name: Optional[str] = None
    description: str = ""
    price: Any = Decimal("0")
    stock: Any = 0
    image: str = ""


class TakedownItemDTO(AdminDTO):
    item_id: Any


class WishlistDTO(_In):
    username: Optional[str] = None
    password: Optional[str] = None
    wishlist: List[int] = Field(default_factory=list)


# ---- Responses ----
class AccountReadDTO(_Out):
    """Public view of an account; the credential handle is never included."""

    username: str
    full_name: str
    created_at: datetime
    is_admin: bool


class ItemReadDTO(_Out):
    id: int
    name: str
    description: str
    price: Decimal
    stock: int
    image: str
    active: bool
    created_at: datetime


class OrderReadDTO(_Out):
    id: int
    item_id: int
    item_name: str
    username: str
    buyer_name: str
    quantity: int
    amount: Decimal
    status: OrderStatus
    arrival_date: Optional[date] = None
    cancel_token: Optional[str] = None
    created_at: datetime
    canceled_at: Optional[datetime] = None
