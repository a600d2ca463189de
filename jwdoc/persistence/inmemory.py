"""In-memory implementation of the key set store."""

from __future__ import annotations

from typing import Dict

from ..errors import StoreConflictError, StoreNotFoundError
from .models import JWKSetRecord, next_revision
from .store import JWKSetStore


class InMemoryJWKSetStore(JWKSetStore):
    """Store key sets in local memory.

    Useful for tests or single-process deployments. Data is not persisted
    across process restarts.
    """

    def __init__(self) -> None:
        self._records: Dict[str, JWKSetRecord] = {}

    async def get(self, id: str) -> JWKSetRecord:
        record = self._records.get(id)
        if record is None:
            raise StoreNotFoundError(f"No key set stored for {id}")
        return record.model_copy(deep=True)

    async def put(self, record: JWKSetRecord) -> str:
        current = self._records.get(record.id)
        current_rev = current.rev if current else None
        if record.rev != current_rev:
            raise StoreConflictError(f"Revision conflict for {record.id}")
        rev = next_revision(current_rev)
        self._records[record.id] = record.model_copy(update={"rev": rev}, deep=True)
        return rev
