"""SQLite implementation of the key set store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any

from ..errors import StoreConflictError, StoreNotFoundError
from .models import JWKSetRecord, next_revision
from .store import JWKSetStore


class SQLiteJWKSetStore(JWKSetStore):
    """Persist key sets using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS jwk_sets (
                id TEXT PRIMARY KEY,
                rev TEXT NOT NULL,
                keys TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _write(self, record: JWKSetRecord) -> str:
        # compare and write inside one transaction
        with self._conn:
            row = self._conn.execute(
                "SELECT rev FROM jwk_sets WHERE id = ?", (record.id,)
            ).fetchone()
            current_rev = row["rev"] if row else None
            if record.rev != current_rev:
                raise StoreConflictError(f"Revision conflict for {record.id}")
            rev = next_revision(current_rev)
            self._conn.execute(
                "INSERT INTO jwk_sets (id, rev, keys) VALUES (?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET rev = excluded.rev, keys = excluded.keys",
                (record.id, rev, json.dumps(record.keys)),
            )
        return rev

    # ------------------------------------------------------------------
    # Store API
    async def get(self, id: str) -> JWKSetRecord:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT id, rev, keys FROM jwk_sets WHERE id = ?", id
        )
        if not row:
            raise StoreNotFoundError(f"No key set stored for {id}")
        return JWKSetRecord(id=row["id"], rev=row["rev"], keys=json.loads(row["keys"]))

    async def put(self, record: JWKSetRecord) -> str:
        return await asyncio.to_thread(self._write, record)

    def close(self) -> None:
        self._conn.close()
