"""Immutable JOSE signature over a claims payload."""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ..encoding import base64url_decode, base64url_encode, signing_input
from ..errors import (
    DataError,
    MissingAlgError,
    MissingCacheError,
    MissingKeyError,
    MissingPayloadError,
    UnresolvableKeyError,
)
from ..keys.credential import resolve_credential_key
from ..keys.jwk import JWK
from ..models import JOSEHeader

if TYPE_CHECKING:
    from ..keys.cache import JWKSetCache

logger = logging.getLogger(__name__)


class JOSESignature(BaseModel):
    """One signature: protected header, optional unprotected header and
    the base64url signature value.

    Instances are frozen. The key set cache used to resolve ``kid``/``jku``
    references is handed over at construction and kept out of every
    serialization. Fields the class does not know are retained verbatim.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    protected_header: Optional[Dict[str, Any]] = Field(default=None, alias="protected")
    unprotected_header: Optional[Dict[str, Any]] = Field(default=None, alias="header")
    signature: Optional[str] = None

    _cache: Any = PrivateAttr(default=None)

    def __init__(self, *, cache: Optional["JWKSetCache"] = None, **data: Any) -> None:
        super().__init__(**data)
        self._bind(cache)

    @classmethod
    def from_descriptor(
        cls, descriptor: Mapping[str, Any], cache: Optional["JWKSetCache"] = None
    ) -> "JOSESignature":
        """Build a signature from a parsed descriptor.

        Every descriptor member, ``cache`` included, is treated as data.
        """
        signature = cls.model_validate(dict(descriptor))
        signature._bind(cache)
        return signature

    def _bind(self, cache: Optional["JWKSetCache"]) -> None:
        if not self.protected_header:
            raise DataError("JOSESignature must define protected header")

        alg = self.protected_header.get("alg")
        if not self.signature and alg != "none":
            raise DataError("JOSESignature must define signature")
        if self.signature and alg == "none":
            raise DataError("Unsecured JWS must not include signature")
        if cache is None and alg != "none":
            raise DataError("JOSESignature requires cache")
        if self.signature:
            try:
                base64url_decode(self.signature)
            except ValueError as exc:
                raise DataError(f"JOSESignature signature is not base64url: {exc}") from exc

        self._cache = cache

    @field_validator("protected_header", "unprotected_header", mode="after")
    @classmethod
    def _detach(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(value)

    # ------------------------------------------------------------------
    @property
    def cache(self) -> Optional["JWKSetCache"]:
        return self._cache

    @property
    def alg(self) -> Optional[str]:
        return self.protected_header.get("alg")

    @property
    def header(self) -> Dict[str, Any]:
        """JOSE header: unprotected parameters overlaid by protected ones."""
        return {**(self.unprotected_header or {}), **self.protected_header}

    @property
    def params(self) -> JOSEHeader:
        return JOSEHeader.model_validate(self.protected_header)

    @property
    def signature_bytes(self) -> bytes:
        return base64url_decode(self.signature) if self.signature else b""

    def to_descriptor(self) -> Dict[str, Any]:
        """Canonical signature descriptor with raw (unencoded) headers."""
        descriptor: Dict[str, Any] = {"protected": copy.deepcopy(self.protected_header)}
        if self.unprotected_header is not None:
            descriptor["header"] = copy.deepcopy(self.unprotected_header)
        descriptor["signature"] = self.signature or ""
        for name, value in (self.model_extra or {}).items():
            descriptor.setdefault(name, copy.deepcopy(value))
        return descriptor

    # ------------------------------------------------------------------
    @classmethod
    async def sign(
        cls,
        *,
        payload: Any = None,
        protected_header_params: Optional[Mapping[str, Any]] = None,
        unprotected_header: Optional[Mapping[str, Any]] = None,
        cache: Optional["JWKSetCache"] = None,
        key: Any = None,
    ) -> "JOSESignature":
        """Sign ``payload`` with ``key`` and return a finished signature.

        The key decides how it appears in the protected header (``alg``,
        default ``kid``); ``protected_header_params`` adds to that.
        """
        if payload is None:
            raise MissingPayloadError("Missing payload for JOSE Signature")
        if cache is None:
            raise MissingCacheError("Missing JWKSetCache for JOSE Signature")
        if key is None:
            raise MissingKeyError("JOSE Signature requires JWK")

        jwk = await JWK.import_key(key)
        protected = jwk.materialize_protected_header(protected_header_params)
        signature = await jwk.sign(signing_input(protected, payload))
        return cls(
            protected=protected,
            header=dict(unprotected_header) if unprotected_header is not None else None,
            signature=base64url_encode(signature),
            cache=cache,
        )

    async def verify(self, payload: Any, key: Any = None) -> bool:
        """Check this signature over ``payload``.

        ``key`` may be a :class:`JWK` or raw key material. Without one the
        key comes from the embedded credential (``jwc``) or from the cache
        by ``kid`` and ``jku``.

        Raises:
            MissingAlgError: If the protected header has no ``alg``.
            UnresolvableKeyError: If no key can be derived.
        """
        alg = self.protected_header.get("alg")
        if not alg:
            raise MissingAlgError('Missing "alg" in protected header')

        # unsecured JWS; callers enforce their own policy on these
        if alg == "none":
            return True

        if isinstance(key, JWK):
            usable = key.for_algorithm(alg)
            if usable is None:
                logger.warning(
                    f"Key {key.kid} is for {key.alg}, signature uses {alg}; rejecting"
                )
                return False
            return await usable.verify(
                signing_input(self.protected_header, payload), self.signature_bytes
            )

        if key is not None:
            return await self.verify(payload, await JWK.import_key(key, algorithm=alg))

        jwc = self.protected_header.get("jwc")
        if jwc is not None:
            credential_key = await resolve_credential_key(jwc, self._cache)
            if credential_key is None:
                return False
            return await self.verify(payload, credential_key)

        kid = self.protected_header.get("kid")
        jku = self.protected_header.get("jku")
        if kid and jku:
            return await self.verify(payload, await self._cache.get_jwk(kid, jku))

        raise UnresolvableKeyError(
            "Cannot resolve a verification key: no key given and no jwc or kid/jku in header"
        )
