"""Store abstraction for persisted key sets."""

from __future__ import annotations

from typing import Protocol

from .models import JWKSetRecord


class JWKSetStore(Protocol):
    """Protocol for key set persistence backends.

    Writes are revision checked: ``put`` succeeds only when ``record.rev``
    equals the stored revision, or when ``rev`` is ``None`` and nothing is
    stored under ``record.id`` yet.
    """

    async def get(self, id: str) -> JWKSetRecord:
        """Return the stored record or raise ``StoreNotFoundError``."""

    async def put(self, record: JWKSetRecord) -> str:
        """Write ``record`` and return its new revision.

        Raises ``StoreConflictError`` when the revision does not match.
        """
