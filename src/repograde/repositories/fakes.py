"""In-memory fake store for testing.

Dict-backed ArtifactStore. No SQLAlchemy, no I/O — instant operations
for unit tests.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


class FakeArtifactStore:
    """Dict-backed ArtifactStore for testing."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], str] = {}
        self.save_count = 0

    async def save(
        self, analysis_id: str, kind: str, artifact: BaseModel
    ) -> None:
        self._store[(analysis_id, kind)] = artifact.model_dump_json()
        self.save_count += 1

    async def get(
        self, analysis_id: str, kind: str
    ) -> dict[str, Any] | None:
        raw = self._store.get((analysis_id, kind))
        return json.loads(raw) if raw is not None else None

    async def list_kinds(self, analysis_id: str) -> list[str]:
        return sorted(
            kind for (aid, kind) in self._store if aid == analysis_id
        )
