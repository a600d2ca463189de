"""State and behavior shared by JWT and JWD."""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..errors import DataError, InvalidTokenError, JoseError
from ..keys import get_cache
from ..models import JOSEHeader, JWTClaims
from . import serialization as wire
from .serialization import SerializationForm
from .signature import JOSESignature

if TYPE_CHECKING:
    from ..keys.cache import JWKSetCache

logger = logging.getLogger(__name__)

VERIFY_RESULTS = ("boolean", "instance")


class JOSEToken(BaseModel):
    """Signed claims payload plus the signatures over it."""

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[str] = "token"
    default_serialization: ClassVar[str] = wire.COMPACT

    payload: Dict[str, Any]
    serialization: SerializationForm = wire.COMPACT
    verified: Optional[bool] = None

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_is_object(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            raise ValueError("payload must be a JSON object")
        return dict(value)

    # ------------------------------------------------------------------
    @abstractmethod
    def signature_list(self) -> List[JOSESignature]:
        """Signatures in serialization order."""

    @property
    def claims(self) -> JWTClaims:
        return JWTClaims.model_validate(self.payload)

    def descriptors(self) -> List[Dict[str, Any]]:
        return [signature.to_descriptor() for signature in self.signature_list()]

    def serialize(self, form: Optional[str] = None) -> str:
        """Render the token in ``form`` (default: the form it was built in)."""
        return wire.serialize(self.payload, self.descriptors(), form or self.serialization)

    def __str__(self) -> str:
        return self.serialize()

    # ------------------------------------------------------------------
    # Construction helpers
    @classmethod
    def _check_payload(cls, payload: Any) -> Dict[str, Any]:
        if not isinstance(payload, Mapping):
            raise DataError(f"{cls.kind} payload must be a mapping")
        try:
            JWTClaims.model_validate(dict(payload))
        except ValidationError as exc:
            raise DataError(f"Invalid {cls.kind} claims: {exc}") from exc
        return dict(payload)

    @classmethod
    def _signature_from(
        cls, descriptor: Mapping[str, Any], cache: Optional["JWKSetCache"]
    ) -> JOSESignature:
        """Rebuild a signature from a parsed descriptor."""
        try:
            JOSEHeader.model_validate(descriptor["protected"])
            return JOSESignature.from_descriptor(descriptor, cache=cache)
        except (DataError, ValidationError, TypeError) as exc:
            raise InvalidTokenError(f"Invalid {cls.kind}: {exc}") from exc

    @classmethod
    def _parse(cls, raw: Any) -> wire.ParsedToken:
        parsed = wire.parse(raw, cls.kind)
        try:
            JWTClaims.model_validate(parsed.payload or {})
        except ValidationError as exc:
            raise InvalidTokenError(f"Invalid {cls.kind}: {exc}") from exc
        return parsed

    @classmethod
    async def sign(
        cls,
        payload: Any,
        *,
        key: Any,
        protected: Optional[Mapping[str, Any]] = None,
        header: Optional[Mapping[str, Any]] = None,
        cache: Optional["JWKSetCache"] = None,
    ) -> JOSESignature:
        """Produce a signature over ``payload`` without building a token."""
        if payload is not None:
            payload = cls._check_payload(payload)
        return await JOSESignature.sign(
            payload=payload,
            protected_header_params=protected,
            unprotected_header=header,
            cache=cache if cache is not None else get_cache(),
            key=key,
        )

    # ------------------------------------------------------------------
    # Verification
    @classmethod
    async def verify(
        cls,
        token: Any,
        *,
        key: Any = None,
        result: str = "boolean",
        cache: Optional["JWKSetCache"] = None,
    ) -> Any:
        """Verify every signature of ``token``.

        ``token`` may be an instance or anything :meth:`decode` accepts.
        With ``result="boolean"`` the outcome is ``True`` only if every
        signature checks out, and key resolution errors propagate. With
        ``result="instance"`` a copy of the token annotated with the outcome
        is returned and resolution errors count as failed signatures.
        """
        if result not in VERIFY_RESULTS:
            raise DataError(f"Unknown verification result type: {result}")
        if not isinstance(token, cls):
            token = cls.decode(token, cache=cache)

        outcomes = await token._check_signatures(key, tolerant=result == "instance")
        if result == "instance":
            return token._annotate(outcomes)
        return bool(outcomes) and all(outcomes)

    @classmethod
    @abstractmethod
    def decode(cls, raw: Any, *, cache: Optional["JWKSetCache"] = None) -> "JOSEToken":
        """Parse ``raw`` into a token of this kind."""

    async def _check_signatures(self, key: Any, tolerant: bool) -> List[bool]:
        signatures = self.signature_list()
        outcomes = await asyncio.gather(
            *(signature.verify(self.payload, key) for signature in signatures),
            return_exceptions=tolerant,
        )

        results: List[bool] = []
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, JoseError):
                logger.warning(f"{self.kind} signature {index} not verified: {outcome}")
                results.append(False)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                if not outcome:
                    logger.debug(f"{self.kind} signature {index} did not match")
                results.append(bool(outcome))
        return results

    def _annotate(self, outcomes: List[bool]) -> "JOSEToken":
        return self.model_copy(update={"verified": bool(outcomes) and all(outcomes)})
