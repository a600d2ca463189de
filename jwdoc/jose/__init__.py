"""JOSE tokens: signatures, JWT, JWD and their wire forms."""

from .jwd import JWD
from .jwt import JWT
from .serialization import (
    COMPACT,
    DOCUMENT,
    FLATTENED,
    FLATTENED_DOCUMENT,
    GENERAL,
    ParsedToken,
    detect,
    parse,
)
from .signature import JOSESignature
from .token import JOSEToken

__all__ = [
    "COMPACT",
    "DOCUMENT",
    "FLATTENED",
    "FLATTENED_DOCUMENT",
    "GENERAL",
    "JOSESignature",
    "JOSEToken",
    "JWD",
    "JWT",
    "ParsedToken",
    "detect",
    "parse",
]
