"""Key resolution from embedded credentials (the ``jwc`` header)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Union

from ..errors import InvalidTokenError
from .jwk import JWK

if TYPE_CHECKING:
    from .cache import JWKSetCache

logger = logging.getLogger(__name__)


async def resolve_credential_key(
    jwc: Union[str, List[str]], cache: "JWKSetCache"
) -> Optional[JWK]:
    """Return the signer key certified by ``jwc``, or ``None`` if untrusted.

    A credential is a compact JWT whose payload is a public JWK. In a
    chain ``[leaf, ..., root]`` every credential is checked with the key
    carried by the next one; the root is checked through its own header
    (``kid``/``jku`` or a nested ``jwc``). Unsecured credentials are never
    trusted.
    """
    from ..jose.jwt import JWT

    chain = [jwc] if isinstance(jwc, str) else jwc
    if not isinstance(chain, list) or not chain or not all(
        isinstance(item, str) for item in chain
    ):
        raise InvalidTokenError("jwc must be a compact credential or a list of them")

    credentials = [JWT.decode(item, cache=cache) for item in chain]
    issuer_key: Optional[JWK] = None
    for position, credential in reversed(list(enumerate(credentials))):
        if credential.signature.protected_header.get("alg") == "none":
            logger.warning(f"Rejecting unsecured credential at chain position {position}")
            return None
        if not await credential.signature.verify(credential.payload, issuer_key):
            logger.warning(f"Credential at chain position {position} failed verification")
            return None
        issuer_key = await JWK.import_key(credential.payload)
    return issuer_key
