"""Runtime configuration read from environment variables."""

import os
from dataclasses import dataclass


def _bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    store: str = "json"
    data_path: str = "data.json"
    database_url: str = "sqlite:///marketplace.db"
    bcrypt_rounds: int = 12
    owner_requires_secret: bool = True
    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings(
        store=os.getenv("MARKETPLACE_STORE", "json").strip().lower(),
        data_path=os.getenv("MARKETPLACE_DATA_PATH", "data.json"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///marketplace.db"),
        bcrypt_rounds=int(os.getenv("MARKETPLACE_BCRYPT_ROUNDS", "12")),
        owner_requires_secret=_bool(os.getenv("MARKETPLACE_OWNER_REQUIRES_SECRET", "true")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
