"""Key resolution cache for ``(kid, jku)`` references."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Optional

import httpx

from ..config import JwdocConfig
from ..errors import (
    KeyNotFoundError,
    KeySetFetchError,
    KeySetNotFoundError,
    StoreConflictError,
    StoreNotFoundError,
)
from ..persistence.models import JWKSetRecord
from ..persistence.store import JWKSetStore
from .jwk import JWK
from .jwkset import DEFAULT_FETCH_TIMEOUT, JWKSet

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100


class JWKSetCache:
    """LRU cache of JWK Sets keyed by their ``jku`` locator.

    Lookups go to memory first, then to the optional persistent store,
    then to the network. Whatever the store or network returns is kept in
    memory; the least recently used locator is evicted once more than
    ``max_entries`` sets are held.

    Concurrent misses for the same locator are not coalesced: each one
    fetches on its own and the last result written wins.
    """

    def __init__(
        self,
        store: Optional[JWKSetStore] = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        self.store = store
        self.max_entries = max_entries
        self._client = client
        self._timeout = timeout
        # recency order: first item is the least recently used
        self._entries: "OrderedDict[str, JWKSet]" = OrderedDict()

    @classmethod
    def from_config(
        cls,
        config: JwdocConfig,
        store: Optional[JWKSetStore] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "JWKSetCache":
        return cls(
            store=store,
            max_entries=config.cache.max_entries,
            client=client,
            timeout=config.fetch.timeout,
        )

    # ------------------------------------------------------------------
    # Introspection
    @property
    def recent(self) -> List[str]:
        """Cached locators, most recently used first."""
        return list(reversed(self._entries))

    @property
    def jwk_sets(self) -> Dict[str, JWKSet]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, jku: object) -> bool:
        return jku in self._entries

    def clear(self) -> None:
        self._entries.clear()

    # ------------------------------------------------------------------
    # Public API
    async def get_jwk(self, kid: str, jku: str) -> JWK:
        """Resolve the verification key ``kid`` published at ``jku``.

        A key missing from the cached set (e.g. after a key rotation)
        triggers exactly one forced refresh from the network.
        """
        jwks = await self.get_jwks(jku)
        jwk = self._find_verification_key(jwks, kid)
        if jwk is not None:
            return jwk

        logger.info(f"Key {kid} not in cached set for {jku}; refreshing from network")
        jwks = self.cache_jwks(jku, await self.get_jwks_from_network(jku))
        jwk = self._find_verification_key(jwks, kid)
        if jwk is None:
            raise KeyNotFoundError("JWK not found in JWK Set")
        return jwk

    async def get_jwks(self, jku: str) -> JWKSet:
        """Resolve the key set for ``jku`` from memory, store or network."""
        jwks = self.get_jwks_from_cache(jku)
        if jwks is None:
            jwks = await self.get_jwks_from_store(jku)
        if jwks is None:
            jwks = await self.get_jwks_from_network(jku)
        return self.cache_jwks(jku, jwks)

    # ------------------------------------------------------------------
    # Pipeline stages
    def get_jwks_from_cache(self, jku: str) -> Optional[JWKSet]:
        jwks = self._entries.get(jku)
        logger.debug(f"Memory {'hit' if jwks is not None else 'miss'} for {jku}")
        return jwks

    async def get_jwks_from_store(self, jku: str) -> Optional[JWKSet]:
        if self.store is None:
            return None
        try:
            record = await self.store.get(jku)
        except StoreNotFoundError:
            logger.debug(f"Store miss for {jku}")
            return None
        logger.debug(f"Store hit for {jku}")
        return await JWKSet.import_keys(record.to_jwks())

    async def get_jwks_from_network(self, jku: str) -> Optional[JWKSet]:
        try:
            jwks = await JWKSet.import_keys(
                jku, client=self._client, timeout=self._timeout
            )
        except KeySetFetchError as exc:
            logger.warning(f"JWK Set unavailable at {jku}: {exc}")
            return None
        if self.store is not None:
            await self._persist(jku, jwks)
        return jwks

    def cache_jwks(self, jku: str, jwks: Optional[JWKSet]) -> JWKSet:
        """Mark ``jku`` most recently used and evict beyond capacity."""
        if jwks is None:
            raise KeySetNotFoundError("JWK Set not found")

        self._entries[jku] = jwks
        self._entries.move_to_end(jku)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.info(f"Evicted JWK Set {evicted} from cache")
        return jwks

    # ------------------------------------------------------------------
    # Helpers
    @staticmethod
    def _find_verification_key(jwks: JWKSet, kid: str) -> Optional[JWK]:
        return jwks.find(lambda key: key.kid == kid and key.can_verify)

    async def _persist(self, jku: str, jwks: JWKSet) -> None:
        record = JWKSetRecord(id=jku, keys=jwks.to_dict()["keys"])
        try:
            await self.store.put(record)
        except StoreConflictError:
            logger.warning(f"Stored JWK Set for {jku} changed; retrying write once")
            current = await self.store.get(jku)
            await self.store.put(record.model_copy(update={"rev": current.rev}))
