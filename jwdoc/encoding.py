"""Encoding helpers shared by signatures and serializations."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any


def base64url_encode(data: bytes | str) -> str:
    """Encode ``data`` as unpadded base64url text."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(data: str) -> bytes:
    """Decode unpadded base64url text.

    Raises:
        ValueError: If ``data`` contains characters outside the base64url
            alphabet or has an impossible length.
    """
    if not isinstance(data, str):
        raise ValueError("base64url input must be text")
    if "=" in data or "+" in data or "/" in data:
        raise ValueError("input is not base64url")
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as exc:
        raise ValueError(str(exc)) from exc


def canonical_json(value: Any) -> str:
    """Serialize ``value`` the way it is embedded in signing inputs."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def encode_segment(value: Any) -> str:
    return base64url_encode(canonical_json(value))


def decode_segment(segment: str) -> Any:
    """Decode a base64url segment holding JSON text."""
    return json.loads(base64url_decode(segment).decode("utf-8"))


def signing_input(protected_header: dict[str, Any], payload: Any) -> bytes:
    """Build ``b64u(JSON(header)) "." b64u(JSON(payload))`` as bytes."""
    return f"{encode_segment(protected_header)}.{encode_segment(payload)}".encode(
        "ascii"
    )
