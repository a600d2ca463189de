"""PostgreSQL implementation of the key set store."""

from __future__ import annotations

import json

import asyncpg

from ..errors import StoreConflictError, StoreNotFoundError
from .models import JWKSetRecord, next_revision
from .store import JWKSetStore


class PostgresJWKSetStore(JWKSetStore):
    """Persist key sets using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS jwk_sets (
                id TEXT PRIMARY KEY,
                rev TEXT NOT NULL,
                keys JSONB NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def get(self, id: str) -> JWKSetRecord:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT id, rev, keys FROM jwk_sets WHERE id = $1", id
            )
        finally:
            await conn.close()
        if not row:
            raise StoreNotFoundError(f"No key set stored for {id}")
        keys = row["keys"]
        if isinstance(keys, str):
            keys = json.loads(keys)
        return JWKSetRecord(id=row["id"], rev=row["rev"], keys=keys)

    async def put(self, record: JWKSetRecord) -> str:
        conn = await self._connect()
        try:
            async with conn.transaction():
                current_rev = await conn.fetchval(
                    "SELECT rev FROM jwk_sets WHERE id = $1 FOR UPDATE", record.id
                )
                if record.rev != current_rev:
                    raise StoreConflictError(f"Revision conflict for {record.id}")
                rev = next_revision(current_rev)
                await conn.execute(
                    """
                    INSERT INTO jwk_sets (id, rev, keys) VALUES ($1, $2, $3)
                    ON CONFLICT (id) DO UPDATE SET rev = EXCLUDED.rev, keys = EXCLUDED.keys
                    """,
                    record.id,
                    rev,
                    json.dumps(record.keys),
                )
        finally:
            await conn.close()
        return rev
