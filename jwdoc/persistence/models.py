"""Data models for persisted key sets."""

from __future__ import annotations

import uuid
from typing import Any, Optional

from pydantic import BaseModel, Field


class JWKSetRecord(BaseModel):
    """A key set document keyed by the locator it was fetched from."""

    id: str = Field(..., description="JWK Set URL")
    rev: Optional[str] = Field(default=None, description="Revision the write is based on")
    keys: list[dict[str, Any]] = Field(default_factory=list)

    def to_jwks(self) -> dict[str, Any]:
        """Return the record contents as JWK Set data."""
        return {"keys": self.keys}


def next_revision(rev: Optional[str]) -> str:
    """Produce the revision that follows ``rev``."""
    generation = int(rev.split("-", 1)[0]) if rev else 0
    return f"{generation + 1}-{uuid.uuid4().hex}"
