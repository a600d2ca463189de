"""JSON Web Document: one claims payload, any number of signatures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, List, Literal, Mapping, Optional

from pydantic import field_validator

from ..errors import DataError, InvalidTokenError, MissingPayloadError, UnsupportedTokenError
from ..keys import get_cache
from . import serialization as wire
from .serialization import SerializationForm
from .signature import JOSESignature
from .token import JOSEToken

if TYPE_CHECKING:
    from ..keys.cache import JWKSetCache
    from .jwt import JWT


class JWD(JOSEToken):
    """Multi-signature document.

    Every signature covers the same payload and is verified on its own;
    the document verifies only when all of them do. The default wire form
    is ``document``: general JSON with the payload and protected headers
    left as readable JSON.
    """

    kind: ClassVar[str] = "JWD"
    default_serialization: ClassVar[str] = wire.DOCUMENT

    signatures: List[JOSESignature]
    type: Literal["JWS", "JWE"] = "JWS"
    serialization: SerializationForm = wire.DOCUMENT
    signature_results: Optional[List[bool]] = None

    @field_validator("signatures", mode="before")
    @classmethod
    def _require_signature_instances(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)) or not all(
            isinstance(item, JOSESignature) for item in value
        ):
            raise ValueError("signatures must be a list of JOSESignature")
        return list(value)

    def signature_list(self) -> List[JOSESignature]:
        return list(self.signatures)

    # ------------------------------------------------------------------
    @classmethod
    def decode(cls, raw: Any, *, cache: Optional["JWKSetCache"] = None) -> "JWD":
        """Parse a JWD from any JWS serialization, document forms included."""
        parsed = cls._parse(raw)
        if parsed.is_encrypted:
            raise UnsupportedTokenError("JWE documents are not supported")
        if not parsed.descriptors:
            raise InvalidTokenError("Invalid JWD: no signatures")

        if cache is None:
            cache = get_cache()
        signatures = [cls._signature_from(d, cache) for d in parsed.descriptors]
        return cls(
            payload=parsed.payload,
            signatures=signatures,
            type="JWS",
            serialization=parsed.form,
        )

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
    ) -> "JWD":
        if payload is None:
            raise MissingPayloadError("Missing payload for JWD")
        payload = cls._check_payload(payload)
        signature = await cls.sign(
            payload, key=key, protected=protected, header=header, cache=cache
        )
        return cls(
            payload=payload,
            signatures=[signature],
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
        token = await cls.create(
            payload,
            key=key,
            protected=protected,
            header=header,
            serialization=serialization,
            cache=cache,
        )
        return token.serialize()

    async def add_signature(
        self,
        key: Any,
        *,
        protected: Optional[Mapping[str, Any]] = None,
        header: Optional[Mapping[str, Any]] = None,
        cache: Optional["JWKSetCache"] = None,
    ) -> "JWD":
        """Return a copy of this document carrying one more signature.

        The new document has not been verified; ``verified`` and
        ``signature_results`` are reset.
        """
        if cache is None:
            cache = next((s.cache for s in self.signatures if s.cache is not None), None)
        signature = await self.sign(
            self.payload, key=key, protected=protected, header=header, cache=cache
        )
        serialization = self.serialization
        if serialization in wire.SINGLE_SIGNATURE_FORMS:
            serialization = wire.DOCUMENT
        return self.model_copy(
            update={
                "signatures": [*self.signatures, signature],
                "serialization": serialization,
                "verified": None,
                "signature_results": None,
            }
        )

    # ------------------------------------------------------------------
    def to_document_general(self) -> str:
        return self.serialize(wire.DOCUMENT)

    def to_document_flattened(self) -> str:
        return self.serialize(wire.FLATTENED_DOCUMENT)

    def to_jwt(self) -> "JWT":
        from .jwt import JWT

        if len(self.signatures) != 1:
            raise DataError(
                f"Only a JWD with exactly one signature converts to JWT, "
                f"this one has {len(self.signatures)}"
            )
        return JWT(
            payload=self.payload,
            signature=self.signatures[0],
            serialization=self.serialization,
            verified=self.verified,
        )

    def _annotate(self, outcomes: List[bool]) -> "JWD":
        return self.model_copy(
            update={
                "verified": bool(outcomes) and all(outcomes),
                "signature_results": outcomes,
            }
        )
