"""JSON Web Token: a claims payload under exactly one signature."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Mapping, Optional

from pydantic import field_validator

from ..errors import InvalidTokenError, MissingPayloadError, UnsupportedTokenError
from ..keys import get_cache
from . import serialization as wire
from .serialization import SerializationForm
from .signature import JOSESignature
from .token import JOSEToken

if TYPE_CHECKING:
    from ..keys.cache import JWKSetCache
    from .jwd import JWD


class JWT(JOSEToken):
    """A signed JWT in any of the JWS serializations.

    Example:
        >>> token = await JWT.encode({"sub": "alice"}, key=private_jwk)
        >>> await JWT.verify(token)
        True
    """

    kind: ClassVar[str] = "JWT"
    default_serialization: ClassVar[str] = wire.COMPACT

    signature: JOSESignature
    serialization: SerializationForm = wire.COMPACT

    @field_validator("signature", mode="before")
    @classmethod
    def _require_signature_instance(cls, value: Any) -> Any:
        if not isinstance(value, JOSESignature):
            raise ValueError("signature must be a JOSESignature")
        return value

    @property
    def header(self) -> Dict[str, Any]:
        return self.signature.header

    def signature_list(self) -> List[JOSESignature]:
        return [self.signature]

    # ------------------------------------------------------------------
    @classmethod
    def decode(cls, raw: Any, *, cache: Optional["JWKSetCache"] = None) -> "JWT":
        """Parse a compact, flattened or general serialization."""
        parsed = cls._parse(raw)
        if parsed.is_encrypted:
            raise UnsupportedTokenError("Encrypted JWT content is not supported")
        if len(parsed.descriptors) != 1:
            raise InvalidTokenError(
                f"Invalid JWT: expected one signature, found {len(parsed.descriptors)}"
            )
        signature = cls._signature_from(
            parsed.descriptors[0], cache if cache is not None else get_cache()
        )
        return cls(payload=parsed.payload, signature=signature, serialization=parsed.form)

    @classmethod
    async def create(
        cls,
        payload: Any,
        *,
        key: Any,
        protected: Optional[Mapping[str, Any]] = None,
        header: Optional[Mapping[str, Any]] = None,
        serialization: Optional[str] = None,
        cache: Optional["JWKSetCache"] = None,
    ) -> "JWT":
        if payload is None:
            raise MissingPayloadError("Missing payload for JWT")
        payload = cls._check_payload(payload)
        signature = await cls.sign(
            payload, key=key, protected=protected, header=header, cache=cache
        )
        return cls(
            payload=payload,
            signature=signature,
            serialization=serialization or cls.default_serialization,
        )

    @classmethod
    async def encode(
        cls,
        payload: Any,
        *,
        key: Any,
        protected: Optional[Mapping[str, Any]] = None,
        header: Optional[Mapping[str, Any]] = None,
        serialization: Optional[str] = None,
        cache: Optional["JWKSetCache"] = None,
    ) -> str:
        """Sign ``payload`` and return its serialization (compact by default)."""
        token = await cls.create(
            payload,
            key=key,
            protected=protected,
            header=header,
            serialization=serialization,
            cache=cache,
        )
        return token.serialize()

    # ------------------------------------------------------------------
    def to_compact(self) -> str:
        return self.serialize(wire.COMPACT)

    def to_flattened(self) -> str:
        return self.serialize(wire.FLATTENED)

    def to_general(self) -> str:
        return self.serialize(wire.GENERAL)

    def to_jwd(self) -> "JWD":
        from .jwd import JWD

        return JWD(
            payload=self.payload,
            signatures=[self.signature],
            serialization=self.serialization,
            verified=self.verified,
        )
