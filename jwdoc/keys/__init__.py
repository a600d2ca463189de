"""Keys, key sets and key resolution."""

from __future__ import annotations

from typing import Optional

from ..config import JwdocConfig, load_config
from ..persistence import get_store
from .cache import JWKSetCache
from .credential import resolve_credential_key
from .jwk import JWK
from .jwkset import JWKSet, fetch_jwks

_cache_instance: JWKSetCache | None = None


def get_cache(config: Optional[JwdocConfig] = None) -> JWKSetCache:
    """Return the process-wide key set cache.

    The cache is built once from ``config`` (or the loaded configuration)
    and reused afterwards. Passing ``config`` explicitly rebuilds it.
    """

    global _cache_instance
    if _cache_instance is not None and config is None:
        return _cache_instance

    config = config or load_config()
    _cache_instance = JWKSetCache.from_config(config, store=get_store(config=config))
    return _cache_instance


__all__ = [
    "JWK",
    "JWKSet",
    "JWKSetCache",
    "fetch_jwks",
    "get_cache",
    "resolve_credential_key",
]
