"""Shared test fixtures — snapshots, scripted LLM, in-memory SQLite."""

import os

# Force demo API keys for all tests — no real LLM calls.
# These are set unconditionally at import time, so even if you have
# real keys in your shell environment, pytest overwrites them before
# any Settings() is created.
os.environ["ANTHROPIC_API_KEY"] = "for-demo-purposes-only"
os.environ["OPENAI_API_KEY"] = "for-demo-purposes-only"

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from repograde.config import Settings
from repograde.ingestion.snapshot import RepositorySnapshot, SourceFile
from repograde.llm import LLMCallResult
from repograde.models.base import Base
from repograde.repositories.fakes import FakeArtifactStore


class ScriptedLLM:
    """Stands in for LLMClient: replays canned completions in order.

    Each script entry is a dict/list (serialized to JSON), a raw
    string, or an exception to raise. The last entry repeats once the
    script runs out. Every call is recorded as ``(system, user)``.
    """

    def __init__(self, *script: Any) -> None:
        self._script = list(script)
        self.calls: list[tuple[str, str]] = []

    async def complete(
        self, system: str, user: str, *, json_mode: bool = True
    ) -> LLMCallResult:
        self.calls.append((system, user))
        idx = min(len(self.calls), len(self._script)) - 1
        item = self._script[idx]
        if isinstance(item, BaseException):
            raise item
        content = item if isinstance(item, str) else json.dumps(item)
        return LLMCallResult(
            content=content,
            model="scripted/model",
            input_tokens=len(user) // 4,
            output_tokens=len(content) // 4,
        )


def make_snapshot(
    files: dict[str, str], root: Path = Path("/repo")
) -> RepositorySnapshot:
    return RepositorySnapshot(
        root=root,
        files=tuple(
            SourceFile(path=path, content=content, size_bytes=len(content))
            for path, content in sorted(files.items())
        ),
    )


SAMPLE_FILES: dict[str, str] = {
    "src/main.py": (
        "from src.api.routes import router\n"
        "from src.db.models import Base\n\n"
        "def main():\n    router.start()\n"
    ),
    "src/api/routes.py": (
        "from src.services.payments import charge\n\n"
        "class Router:\n    def start(self):\n        charge(10)\n"
    ),
    "src/services/payments.py": (
        "def charge(amount):\n    if amount <= 0:\n"
        "        raise ValueError('amount')\n    return amount\n"
    ),
    "src/db/models.py": "class Base:\n    pass\n",
    "src/utils/helpers.py": "def slug(s):\n    return s.lower()\n",
    "tests/test_payments.py": "def test_charge():\n    assert True\n",
    "requirements.txt": "flask==3.0\nsqlalchemy\n",
    "README.md": "# Sample\n",
}


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url="sqlite:///:memory:",
        log_dir=tmp_path / "logs",
        litellm_model_chain=["test/primary", "test/fallback"],
    )


@pytest.fixture
def snapshot_factory() -> Callable[..., RepositorySnapshot]:
    return make_snapshot


@pytest.fixture
def sample_snapshot() -> RepositorySnapshot:
    return make_snapshot(SAMPLE_FILES)


@pytest.fixture
def sample_repo(tmp_path: Path) -> Path:
    """SAMPLE_FILES written to disk."""
    root = tmp_path / "sample_repo"
    for rel, content in SAMPLE_FILES.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def llm_factory() -> type[ScriptedLLM]:
    return ScriptedLLM


@pytest.fixture
def store() -> FakeArtifactStore:
    return FakeArtifactStore()


@pytest_asyncio.fixture
async def engine():
    """Function-scoped in-memory engine with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    """Function-scoped session with connection-level rollback."""
    async with engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)
        yield session
        await session.close()
        await transaction.rollback()
