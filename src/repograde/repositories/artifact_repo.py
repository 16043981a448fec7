"""SQL implementations of ArtifactRepository and ArtifactStore."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from repograde.models.artifact import AnalysisArtifact


class SqlArtifactRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, analysis_id: str, kind: str
    ) -> AnalysisArtifact | None:
        result = await self._session.execute(
            select(AnalysisArtifact).where(
                AnalysisArtifact.analysis_id == analysis_id,
                AnalysisArtifact.kind == kind,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_analysis(
        self, analysis_id: str
    ) -> list[AnalysisArtifact]:
        result = await self._session.execute(
            select(AnalysisArtifact)
            .where(AnalysisArtifact.analysis_id == analysis_id)
            .order_by(AnalysisArtifact.kind)
        )
        return list(result.scalars().all())

    async def upsert(
        self, analysis_id: str, kind: str, payload: str
    ) -> AnalysisArtifact:
        existing = await self.get(analysis_id, kind)
        if existing:
            existing.payload = payload
            await self._session.flush()
            return existing
        artifact = AnalysisArtifact(
            analysis_id=analysis_id, kind=kind, payload=payload
        )
        self._session.add(artifact)
        await self._session.flush()
        return artifact


class SqlArtifactStore:
    """ArtifactStore that opens a short-lived session per call.

    Concurrent stages each get their own session, so parallel saves
    never share a transaction.
    """

    def __init__(
        self,
        session_factory: Any,
        repo_factory: Callable[[AsyncSession], SqlArtifactRepository] = (
            SqlArtifactRepository
        ),
    ) -> None:
        self._session_factory = session_factory
        self._repo_factory = repo_factory

    async def save(
        self, analysis_id: str, kind: str, artifact: BaseModel
    ) -> None:
        async with self._session_factory() as session:
            repo = self._repo_factory(session)
            await repo.upsert(
                analysis_id, kind, artifact.model_dump_json()
            )
            await session.commit()

    async def get(
        self, analysis_id: str, kind: str
    ) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            row = await self._repo_factory(session).get(analysis_id, kind)
            return row.payload_dict() if row else None

    async def list_kinds(self, analysis_id: str) -> list[str]:
        async with self._session_factory() as session:
            rows = await self._repo_factory(session).list_for_analysis(
                analysis_id
            )
            return [row.kind for row in rows]
