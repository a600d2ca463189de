"""Persistence layer for fetched key sets."""

from __future__ import annotations

import os
from typing import Optional

from ..config import DATABASE_URL_ENV, JwdocConfig, load_config
from .inmemory import InMemoryJWKSetStore
from .models import JWKSetRecord
from .sqlite import SQLiteJWKSetStore
from .store import JWKSetStore

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresJWKSetStore
except Exception:  # pragma: no cover - optional dependency
    PostgresJWKSetStore = None  # type: ignore


def get_store(
    database_url: Optional[str] = None, config: Optional[JwdocConfig] = None
) -> JWKSetStore | None:
    """Factory function to obtain a key set store.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``JWDOC_DATABASE_URL``, or from
    loaded configuration. When no database is configured, ``None`` is
    returned and key sets are only cached in memory.
    """

    if database_url is None:
        config = config or load_config()
        database_url = os.getenv(DATABASE_URL_ENV) or config.database_url

    if not database_url:
        return None

    if database_url.startswith("memory://"):
        return InMemoryJWKSetStore()
    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        return SQLiteJWKSetStore(path)
    if database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        if PostgresJWKSetStore is None:
            raise RuntimeError("Postgres support not available")
        return PostgresJWKSetStore(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


__all__ = [
    "JWKSetRecord",
    "JWKSetStore",
    "InMemoryJWKSetStore",
    "SQLiteJWKSetStore",
    "PostgresJWKSetStore",
    "get_store",
]
