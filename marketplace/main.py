"""Marketplace API built with FastAPI.

This module exposes the marketplace operations over HTTP. Request bodies
are validated with Pydantic DTOs; every rule (stock, authorization, order
states) lives in ``MarketplaceService``, which the routes receive through
``Depends(get_marketplace_service)`` so tests can swap it out.

Domain errors map to status codes in ``STATUS_BY_ERROR`` and are returned
as ``{"detail": CODE, "reason": text}``; store failures are 503.
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gateway.logging_filters import configure_logging
from gateway.middleware import RequestIdMiddleware

from .exceptions import (
    AlreadyCanceled,
    AuthenticationFailed,
    InsufficientStock,
    InvalidInput,
    InvalidQuantity,
    MarketplaceError,
    NotAuthorized,
    NotFound,
    StoreUnavailable,
)
from .providers import get_marketplace_service
from .schemas import (
    AccountReadDTO,
    CancelOrderDTO,
    CreateAccountDTO,
    CreateItemDTO,
    ItemReadDTO,
    OrderReadDTO,
    PlaceOrderDTO,
    TakedownItemDTO,
    UpdateArrivalDTO,
    UpdateStockDTO,
    WishlistDTO,
)
from .service import MarketplaceService
from .settings import get_settings

logger = logging.getLogger("marketplace.api")

STATUS_BY_ERROR = {
    InvalidInput: 400,
    InvalidQuantity: 400,
    AuthenticationFailed: 401,
    NotAuthorized: 403,
    NotFound: 404,
    AlreadyCanceled: 409,
    InsufficientStock: 422,
}


def status_for(err: MarketplaceError) -> int:
    for cls in type(err).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


def _item(item) -> dict:
    return ItemReadDTO.model_validate(item).model_dump(mode="json", by_alias=True)


def _order(order, with_token: bool = False) -> dict:
    exclude = None if with_token else {"cancel_token"}
    return OrderReadDTO.model_validate(order).model_dump(mode="json", by_alias=True, exclude=exclude)


def create_app() -> FastAPI:
    configure_logging(level=get_settings().log_level)
    app = FastAPI(title="Marketplace Service", version="1.0.0")
    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(MarketplaceError)
    async def _domain_error(request: Request, exc: MarketplaceError):
        return JSONResponse({"detail": exc.code, "reason": exc.reason}, status_code=status_for(exc))

    @app.exception_handler(StoreUnavailable)
    async def _store_error(request: Request, exc: StoreUnavailable):
        logger.error("store unavailable", extra={"path": request.url.path})
        return JSONResponse({"detail": StoreUnavailable.code}, status_code=503)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        reason = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'][1:])}: {e['msg']}" for e in exc.errors()
        )
        return JSONResponse({"detail": InvalidInput.code, "reason": reason}, status_code=400)

    @app.get("/health")
    def health():
        """Liveness/health probe endpoint."""
        return {"ok": True}

    @app.get("/api/items")
    def list_items(service: MarketplaceService = Depends(get_marketplace_service)):
        return {"items": [_item(i) for i in service.list_active_items()]}

    @app.post("/api/create-account")
    def create_account(req: CreateAccountDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        """Log into an existing account or create it (full name required)."""
        account = service.create_account(req.username, req.password, req.full_name)
        return {"account": AccountReadDTO.model_validate(account).model_dump(mode="json", by_alias=True)}

    @app.post("/api/order")
    def place_order(req: PlaceOrderDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        """Place an order; guest orders return their cancel token once, here."""
        order = service.place_order(req.username, req.item_id, req.quantity, req.buyer_full_name)
        return {"order": _order(order, with_token=True)}

    @app.get("/api/orders")
    def list_orders(service: MarketplaceService = Depends(get_marketplace_service)):
        return {"orders": [_order(o) for o in service.list_orders()]}

    @app.post("/api/cancel-order")
    def cancel_order(req: CancelOrderDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        order = service.cancel_order(req.order_id, req.username, req.password, req.cancel_token)
        return {"order": _order(order)}

    @app.post("/api/admin/update-stock")
    def update_stock(req: UpdateStockDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        item = service.admin_update_stock(req.username, req.password, req.item_id, req.new_stock)
        return {"item": _item(item)}

    @app.post("/api/admin/update-arrival")
    def update_arrival(req: UpdateArrivalDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        order = service.admin_set_arrival(req.username, req.password, req.order_id, req.arrival_date)
        return {"order": _order(order)}

    @app.post("/api/admin/create-item")
    def create_item(req: CreateItemDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        item = service.admin_create_item(
            req.username, req.password, req.name, req.description, req.price, req.stock, req.image
        )
        return {"item": _item(item)}

    @app.post("/api/admin/takedown-item")
    def takedown_item(req: TakedownItemDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        """Deactivate an item and cancel its live orders, restoring their stock."""
        result = service.admin_takedown_item(req.username, req.password, req.item_id)
        return {"success": True, "item": _item(result.item), "canceledOrders": result.canceled_count}

    @app.get("/api/wishlist")
    def get_wishlist(
        username: str = "",
        password: str = "",
        service: MarketplaceService = Depends(get_marketplace_service),
    ):
        return {"wishlist": service.get_wishlist(username, password)}

    @app.post("/api/wishlist")
    def set_wishlist(req: WishlistDTO, service: MarketplaceService = Depends(get_marketplace_service)):
        return {"wishlist": service.set_wishlist(req.username, req.password, req.wishlist)}

    return app


app = create_app()
