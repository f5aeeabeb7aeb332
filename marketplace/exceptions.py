"""Marketplace exceptions.

Domain errors are raised by the managers when a business rule is violated.
They subclass ``ValueError`` and stringify to a short error code (for
example ``"INSUFFICIENT_STOCK"``) so callers can branch on ``str(err)``;
the human-readable ``reason`` tells a client whether to retry, ask for
different input or give up. The HTTP layer maps each class to a status code.

``StoreUnavailable`` is the one infrastructure error: the document store
could not be read or written. It is not a ``MarketplaceError``.
"""


class MarketplaceError(ValueError):
    """Base class for recoverable domain errors."""

    code = "MARKETPLACE_ERROR"
    default_reason = "request rejected"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.default_reason
        super().__init__(self.code)

    def __str__(self) -> str:
        return self.code


class InvalidInput(MarketplaceError):
    """A required field is missing or malformed."""

    code = "INVALID_INPUT"
    default_reason = "invalid input"


class InvalidQuantity(MarketplaceError):
    """Quantity is not a positive integer."""

    code = "INVALID_QUANTITY"
    default_reason = "quantity must be a positive integer"


class NotFound(MarketplaceError):
    code = "NOT_FOUND"
    default_reason = "not found"


class ItemNotFound(NotFound):
    code = "ITEM_NOT_FOUND"
    default_reason = "item not found"


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"
    default_reason = "order not found"


class AccountNotFound(NotFound):
    code = "ACCOUNT_NOT_FOUND"
    default_reason = "account not found"


class InsufficientStock(MarketplaceError):
    """Not enough stock to reserve; retrying with the same quantity fails."""

    code = "INSUFFICIENT_STOCK"
    default_reason = "not enough stock"


class AlreadyCanceled(MarketplaceError):
    """The order is canceled, which is terminal."""

    code = "ALREADY_CANCELED"
    default_reason = "order already canceled"


class NotAuthorized(MarketplaceError):
    code = "NOT_AUTHORIZED"
    default_reason = "not authorized to cancel this order"


class AuthenticationFailed(MarketplaceError):
    code = "AUTHENTICATION_FAILED"
    default_reason = "invalid credentials"


class StoreUnavailable(RuntimeError):
    """The document store failed to load or save a snapshot."""

    code = "STORE_UNAVAILABLE"
