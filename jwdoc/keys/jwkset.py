"""JSON Web Key Set container and remote retrieval."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

import httpx

from ..errors import DataError, KeyImportError, KeySetFetchError
from .jwk import JWK

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 5.0

# statuses that mean "there is no key set at this locator"
_MISSING_STATUSES = (404, 410)


async def fetch_jwks(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> Dict[str, Any]:
    """Retrieve the JWK Set document published at ``url``.

    Raises:
        KeySetFetchError: If the document does not exist or the host cannot
            be reached.
        httpx.HTTPStatusError: For any other unsuccessful response.
    """
    logger.info(f"Fetching JWK Set from {url}")
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as owned:
                response = await owned.get(url)
        else:
            response = await client.get(url)
    except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
        raise KeySetFetchError(url, f"Failed to fetch remote JWKSet: {exc}") from exc

    if response.status_code in _MISSING_STATUSES:
        raise KeySetFetchError(
            url,
            f"Failed to fetch remote JWKSet: HTTP {response.status_code}",
            status_code=response.status_code,
        )
    response.raise_for_status()
    try:
        return response.json()
    except ValueError as exc:
        raise DataError(f"JWK Set at {url} is not valid JSON") from exc


class JWKSet:
    """Ordered collection of :class:`JWK` instances."""

    def __init__(self, keys: Iterable[JWK] = ()) -> None:
        self.keys: List[JWK] = list(keys)

    def __iter__(self) -> Iterator[JWK]:
        return iter(self.keys)

    def __len__(self) -> int:
        return len(self.keys)

    def __repr__(self) -> str:
        return f"JWKSet(kids={[key.kid for key in self.keys]!r})"

    @classmethod
    async def import_keys(
        cls,
        source: Any,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> "JWKSet":
        """Build a key set from JWKS data or from the URL publishing it.

        Members that cannot be imported (unknown key types, unsupported
        curves) are skipped.
        """
        if isinstance(source, JWKSet):
            return source
        if isinstance(source, str) and source.startswith(("http://", "https://")):
            source = await fetch_jwks(source, client=client, timeout=timeout)
        elif isinstance(source, str):
            try:
                source = json.loads(source)
            except ValueError as exc:
                raise DataError(f"Invalid JWK Set JSON: {exc}") from exc

        if not isinstance(source, Mapping) or not isinstance(source.get("keys"), list):
            raise DataError("JWK Set must be an object with a 'keys' array")

        keys = []
        for member in source["keys"]:
            try:
                keys.append(JWK(member))
            except KeyImportError as exc:
                logger.warning(f"Skipping unusable JWK Set member: {exc}")
        return cls(keys)

    def find(self, predicate: Callable[[JWK], bool]) -> Optional[JWK]:
        """Return the first key matching ``predicate``."""
        for key in self.keys:
            if predicate(key):
                return key
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"keys": [key.to_dict() for key in self.keys]}
