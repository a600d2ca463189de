"""jwdoc: JSON Web Tokens and multi-signature JSON Web Documents."""

from .config import JwdocConfig, load_config
from .errors import DataError, InvalidTokenError, JoseError, MalformedTokenError
from .jose import JWD, JWT, JOSESignature
from .keys import JWK, JWKSet, JWKSetCache, get_cache
from .persistence import get_store

__version__ = "0.1.0"
__all__ = [
    "JWT",
    "JWD",
    "JOSESignature",
    "JWK",
    "JWKSet",
    "JWKSetCache",
    "get_cache",
    "get_store",
    "JwdocConfig",
    "load_config",
    "JoseError",
    "DataError",
    "InvalidTokenError",
    "MalformedTokenError",
]
