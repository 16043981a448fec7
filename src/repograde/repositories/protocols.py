"""Protocol-based repository interfaces.

SQL implementations satisfy these protocols structurally (no inheritance).
Test doubles can be plain classes or mocks matching the same signature.
"""

from typing import Any, Protocol

from pydantic import BaseModel

from repograde.models.artifact import AnalysisArtifact


class ArtifactRepository(Protocol):
    async def get(
        self, analysis_id: str, kind: str
    ) -> AnalysisArtifact | None: ...
    async def list_for_analysis(
        self, analysis_id: str
    ) -> list[AnalysisArtifact]: ...
    async def upsert(
        self, analysis_id: str, kind: str, payload: str
    ) -> AnalysisArtifact: ...


class ArtifactStore(Protocol):
    """What stages persist through: one upsert per save, last write wins."""

    async def save(
        self, analysis_id: str, kind: str, artifact: BaseModel
    ) -> None: ...
    async def get(
        self, analysis_id: str, kind: str
    ) -> dict[str, Any] | None: ...
    async def list_kinds(self, analysis_id: str) -> list[str]: ...
