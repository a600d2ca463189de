"""Exception types raised by jwdoc."""

from __future__ import annotations

from typing import Optional


class JoseError(Exception):
    """Base class for every jwdoc error."""


class DataError(JoseError):
    """Missing or malformed construction input."""


class MissingPayloadError(DataError):
    pass


class MissingCacheError(DataError):
    pass


class MissingKeyError(DataError):
    pass


class MissingAlgError(DataError):
    pass


class KeyImportError(DataError):
    """Key material could not be turned into a usable JWK."""


class MalformedTokenError(JoseError):
    """Input is not one of the recognized wire serializations."""


class InvalidTokenError(JoseError):
    """Decoded structure violates the token invariants."""


class UnsupportedTokenError(JoseError):
    """Token kind is recognized but not handled (e.g. encrypted documents)."""


class UnresolvableKeyError(JoseError):
    """No verification key can be derived for a signature."""


class KeyNotFoundError(JoseError):
    """Key resolution exhausted without finding a matching key."""


class KeySetNotFoundError(KeyNotFoundError):
    """No key set could be found for a locator."""


class KeySetFetchError(JoseError):
    """A remote key set is missing or its host is unreachable."""

    def __init__(
        self, locator: str, message: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.locator = locator
        self.status_code = status_code


class StoreError(JoseError):
    """Base class for persistent store failures."""


class StoreNotFoundError(StoreError):
    pass


class StoreConflictError(StoreError):
    """Write rejected because the stored revision changed."""
