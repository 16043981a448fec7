"""Database lifecycle for command-line runs."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy.ext.asyncio import async_sessionmaker

from repograde.config import Settings, create_app_engine
from repograde.models.base import Base
from repograde.repositories.artifact_repo import SqlArtifactStore

logger = logging.getLogger(__name__)


def _ensure_sqlite_parent(url: str) -> None:
    for prefix in ("sqlite+aiosqlite:///", "sqlite:///"):
        if url.startswith(prefix):
            path = url[len(prefix):]
            if path and path != ":memory:":
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            return


@asynccontextmanager
async def open_store(
    settings: Settings, database_url: str | None = None
) -> AsyncIterator[SqlArtifactStore]:
    """Create the engine and tables, yield a store, dispose on exit."""
    url = database_url or settings.database_url
    _ensure_sqlite_parent(url)
    engine = create_app_engine(url, echo=settings.debug_mode)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        logger.debug("event=store_opened url=%s", url)
        yield SqlArtifactStore(session_factory)
    finally:
        await engine.dispose()
