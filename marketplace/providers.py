"""Service provider helpers for wiring MarketplaceService with a store.

``get_marketplace_service`` returns the process-wide service built from
``settings.get_settings()``: the document store named by
``MARKETPLACE_STORE`` (``json`` file by default, ``sql`` for a database,
``memory`` for throwaway demos) and a bcrypt hasher with the configured
cost. One instance per process means one store lock per process, which is
what serializes concurrent requests.
"""

import threading
from typing import Optional

from .adapters import BcryptPasswordHasher
from .repository import InMemoryDocumentStore, JsonFileDocumentStore, SqlDocumentStore
from .service import MarketplaceService
from .settings import Settings, get_settings


def build_store(settings: Settings):
    """Return the document store selected by ``settings.store``.

    Raises:
        ValueError: For an unknown store name.
    """
    if settings.store == "json":
        return JsonFileDocumentStore(settings.data_path)
    if settings.store == "sql":
        store = SqlDocumentStore(settings.database_url)
        store.init_db()
        return store
    if settings.store == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"unknown MARKETPLACE_STORE: {settings.store!r}")


def build_service(settings: Settings) -> MarketplaceService:
    return MarketplaceService(
        store=build_store(settings),
        hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        owner_requires_secret=settings.owner_requires_secret,
    )


_service: Optional[MarketplaceService] = None
_service_lock = threading.Lock()


def get_marketplace_service() -> MarketplaceService:
    """Return the configured MarketplaceService singleton.

    Built at most once per process, even when the first requests arrive
    together: a second store would carry a second lock.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = build_service(get_settings())
    return _service


def reset_marketplace_service() -> None:
    """Drop the singleton so the next call rebuilds it from settings."""
    global _service
    with _service_lock:
        _service = None
