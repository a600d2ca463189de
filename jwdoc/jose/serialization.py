"""Mapping between canonical token state and the JOSE wire forms.

Canonical state is a claims payload plus an ordered list of signature
descriptors ``{"protected": {...}, "header"?: {...}, "signature": str|None}``
holding raw (decoded) headers. The wire forms are:

* ``compact``: ``b64u(protected).b64u(payload).b64u(signature)``
* ``flattened``: one signature inlined next to a base64url payload
* ``general``: base64url payload plus a ``signatures`` array
* ``document`` / ``flattened-document``: the JSON forms with raw JSON
  ``payload`` and ``protected`` members instead of base64url text
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Sequence

from ..encoding import base64url_decode, canonical_json, decode_segment, encode_segment
from ..errors import (
    DataError,
    InvalidTokenError,
    MalformedTokenError,
    UnsupportedTokenError,
)

COMPACT = "compact"
FLATTENED = "flattened"
GENERAL = "general"
DOCUMENT = "document"
FLATTENED_DOCUMENT = "flattened-document"

SerializationForm = Literal["compact", "flattened", "general", "document", "flattened-document"]

FORMS = (COMPACT, FLATTENED, GENERAL, DOCUMENT, FLATTENED_DOCUMENT)
SINGLE_SIGNATURE_FORMS = (COMPACT, FLATTENED, FLATTENED_DOCUMENT)
DOCUMENT_FORMS = (DOCUMENT, FLATTENED_DOCUMENT)

_ENCRYPTION_MEMBERS = ("recipients", "ciphertext", "encrypted_key", "iv", "tag")


@dataclass(frozen=True)
class ParsedToken:
    """Canonical state recovered from a wire form."""

    payload: Any
    descriptors: List[Dict[str, Any]] = field(default_factory=list)
    form: str = COMPACT
    is_encrypted: bool = False


# ----------------------------------------------------------------------
# Detection and parsing
def is_encrypted(data: Mapping[str, Any]) -> bool:
    """Return ``True`` for JSON objects shaped like a JWE."""
    if any(member in data for member in _ENCRYPTION_MEMBERS):
        return True
    protected = data.get("protected")
    return isinstance(protected, Mapping) and "enc" in protected


def detect(raw: Any) -> str:
    """Name the wire form of ``raw`` without decoding its contents."""
    return parse(raw).form


def parse(raw: Any, kind: str = "token") -> ParsedToken:
    """Decode ``raw`` (compact text, JSON text or a mapping).

    Raises:
        InvalidTokenError: If ``raw`` is neither text nor a mapping, or the
            decoded structure breaks token invariants.
        MalformedTokenError: If ``raw`` is not a recognized wire form.
        UnsupportedTokenError: For compact encrypted tokens.
    """
    if isinstance(raw, Mapping):
        return _parse_json(dict(raw), kind)
    if not isinstance(raw, str):
        raise InvalidTokenError(f"Invalid {kind}: expected text or a mapping")

    text = raw.strip()
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise MalformedTokenError(f"Malformed {kind}: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedTokenError(f"Malformed {kind}: JSON form must be an object")
        return _parse_json(data, kind)
    return _parse_compact(text, kind)


def _parse_compact(text: str, kind: str) -> ParsedToken:
    segments = text.split(".")
    if len(segments) == 5:
        raise UnsupportedTokenError(f"Compact encrypted {kind} is not supported")
    if len(segments) != 3:
        raise MalformedTokenError(f"Malformed {kind}: expected three dot-separated segments")

    protected_segment, payload_segment, signature = segments
    protected = _decode_json_segment(protected_segment, kind, "protected header")
    payload = _decode_json_segment(payload_segment, kind, "payload")
    _check_object(protected, kind, "protected header")
    _check_object(payload, kind, "payload")
    descriptor = {"protected": protected, "signature": _check_signature(signature, kind)}
    encrypted = "enc" in protected
    return ParsedToken(
        payload=payload, descriptors=[descriptor], form=COMPACT, is_encrypted=encrypted
    )


def _parse_json(data: Dict[str, Any], kind: str) -> ParsedToken:
    has_many = "signatures" in data
    has_one = "signature" in data

    if is_encrypted(data) and not (has_many or has_one):
        return ParsedToken(payload=None, form=GENERAL, is_encrypted=True)
    if has_many and has_one:
        raise MalformedTokenError(f"Malformed {kind}: both 'signature' and 'signatures' present")
    if not (has_many or has_one):
        raise MalformedTokenError(f"Malformed {kind}: no 'signature' or 'signatures' member")
    if "payload" not in data:
        raise MalformedTokenError(f"Malformed {kind}: missing payload")

    payload, document = _decode_member(data["payload"], kind, "payload")
    _check_object(payload, kind, "payload")

    if has_many:
        entries = data["signatures"]
        if not isinstance(entries, list):
            raise MalformedTokenError(f"Malformed {kind}: 'signatures' must be an array")
        descriptors = [_parse_descriptor(entry, kind) for entry in entries]
        form = DOCUMENT if document else GENERAL
    else:
        entry = {name: value for name, value in data.items() if name != "payload"}
        descriptors = [_parse_descriptor(entry, kind)]
        form = FLATTENED_DOCUMENT if document else FLATTENED

    encrypted = any("enc" in descriptor["protected"] for descriptor in descriptors)
    return ParsedToken(
        payload=payload, descriptors=descriptors, form=form, is_encrypted=encrypted
    )


def _parse_descriptor(entry: Any, kind: str) -> Dict[str, Any]:
    if not isinstance(entry, dict):
        raise MalformedTokenError(f"Malformed {kind}: signature entry must be an object")
    if entry.get("protected") is None:
        raise InvalidTokenError(f"Invalid {kind}: signature is missing its protected header")

    protected, _ = _decode_member(entry["protected"], kind, "protected header")
    _check_object(protected, kind, "protected header")

    descriptor: Dict[str, Any] = {"protected": protected}
    header = entry.get("header")
    if header is not None:
        if not isinstance(header, dict):
            raise InvalidTokenError(f"Invalid {kind}: unprotected header must be an object")
        descriptor["header"] = header
    descriptor["signature"] = _check_signature(entry.get("signature"), kind)
    for name, value in entry.items():
        descriptor.setdefault(name, value)
    return descriptor


def _decode_member(value: Any, kind: str, what: str) -> tuple[Any, bool]:
    """Decode a JSON-form member; returns ``(value, was_raw)``."""
    if isinstance(value, str):
        return _decode_json_segment(value, kind, what), False
    if isinstance(value, dict):
        return value, True
    raise MalformedTokenError(f"Malformed {kind}: {what} must be base64url text or an object")


def _decode_json_segment(segment: str, kind: str, what: str) -> Any:
    try:
        return decode_segment(segment)
    except ValueError as exc:
        raise MalformedTokenError(f"Malformed {kind}: undecodable {what}") from exc


def _check_object(value: Any, kind: str, what: str) -> None:
    if not isinstance(value, dict):
        raise InvalidTokenError(f"Invalid {kind}: {what} must be a JSON object")


def _check_signature(value: Any, kind: str) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise MalformedTokenError(f"Malformed {kind}: signature must be base64url text")
    try:
        base64url_decode(value)
    except ValueError as exc:
        raise MalformedTokenError(f"Malformed {kind}: signature is not base64url") from exc
    return value


# ----------------------------------------------------------------------
# Projection
def _encode_descriptor(descriptor: Mapping[str, Any], document: bool) -> Dict[str, Any]:
    protected = descriptor["protected"]
    encoded: Dict[str, Any] = {
        "protected": protected if document else encode_segment(protected)
    }
    if descriptor.get("header") is not None:
        encoded["header"] = descriptor["header"]
    encoded["signature"] = descriptor.get("signature") or ""
    for name, value in descriptor.items():
        encoded.setdefault(name, value)
    return encoded


def to_compact(payload: Any, descriptor: Mapping[str, Any]) -> str:
    if descriptor.get("header") is not None:
        raise DataError("Compact serialization cannot carry an unprotected header")
    return ".".join(
        (
            encode_segment(descriptor["protected"]),
            encode_segment(payload),
            descriptor.get("signature") or "",
        )
    )


def to_flattened(
    payload: Any, descriptor: Mapping[str, Any], document: bool = False
) -> Dict[str, Any]:
    serialized: Dict[str, Any] = {"payload": payload if document else encode_segment(payload)}
    serialized.update(_encode_descriptor(descriptor, document))
    return serialized


def to_general(
    payload: Any, descriptors: Sequence[Mapping[str, Any]], document: bool = False
) -> Dict[str, Any]:
    return {
        "payload": payload if document else encode_segment(payload),
        "signatures": [_encode_descriptor(d, document) for d in descriptors],
    }


def serialize(payload: Any, descriptors: Sequence[Mapping[str, Any]], form: str) -> str:
    """Render canonical state in ``form`` as text."""
    if form not in FORMS:
        raise DataError(f"Unknown serialization: {form}")
    if form in SINGLE_SIGNATURE_FORMS and len(descriptors) != 1:
        raise DataError(
            f"{form} serialization needs exactly one signature, found {len(descriptors)}"
        )
    if not descriptors:
        raise DataError("Cannot serialize a token without signatures")

    if form == COMPACT:
        return to_compact(payload, descriptors[0])
    if form in (FLATTENED, FLATTENED_DOCUMENT):
        obj = to_flattened(payload, descriptors[0], document=form == FLATTENED_DOCUMENT)
    else:
        obj = to_general(payload, descriptors, document=form == DOCUMENT)
    return canonical_json(obj)
