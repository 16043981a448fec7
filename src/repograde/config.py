"""Environment-based configuration and application constants."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from repograde.constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_ACCEPTABLE_SCORE,
    DEFAULT_REFERENCE_EXTENSIONS,
    ArtifactKind,
    StageName,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # LLM Provider
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Model chain (first = primary, rest = fallbacks tried in order)
    litellm_model_chain: Annotated[list[str], NoDecode] = [
        "openai/gpt-4.1-mini",
        "anthropic/claude-3-5-haiku-latest",
    ]
    llm_timeout_seconds: int = 120
    llm_temperature: float = 0.3

    # Database
    database_url: str = "sqlite:///data/repograde.db"

    # Directories
    log_dir: Path = Path("logs")

    # Logging
    log_level: str = "INFO"
    debug_mode: bool = False

    # Snapshot limits
    max_repo_size_bytes: int = 536_870_912  # 512MB
    max_file_size_bytes: int = 1_048_576  # 1MB
    skip_directories: list[str] = [
        "node_modules",
        "vendor",
        "dist",
        "build",
        "target",
        "bin",
        "obj",
        "venv",
        "env",
        ".venv",
        "__pycache__",
        "secrets",
        ".git",
        ".svn",
        ".hg",
        ".next",
    ]

    # Stages
    stage_timeout_seconds: int = 600
    stage_max_concurrency: int = 3
    context_max_tokens: int = 35_000
    context_file_char_limit: int = 5000  # upper bound on per-stage limits

    # Grounding
    reference_extensions: Annotated[list[str], NoDecode] = list(
        DEFAULT_REFERENCE_EXTENSIONS
    )

    @field_validator("litellm_model_chain", mode="before")
    @classmethod
    def _parse_chain(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("litellm_model_chain")
    @classmethod
    def _validate_chain(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError(
                "litellm_model_chain must contain at least one model"
            )
        seen: set[str] = set()
        dupes: list[str] = []
        for m in v:
            if m in seen:
                dupes.append(m)
            seen.add(m)
        if dupes:
            logger.warning(
                "Duplicate models in LITELLM_MODEL_CHAIN: %s",
                ", ".join(dupes),
            )
        return v

    @field_validator("reference_extensions", mode="before")
    @classmethod
    def _parse_extensions(cls, v: Any) -> Any:
        """Accept "py,ts" or [".py", "ts"]; store bare lowercase names."""
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, (list, tuple)):
            return [
                str(ext).strip().lstrip(".").lower()
                for ext in v
                if str(ext).strip().lstrip(".")
            ]
        return v

    @field_validator("reference_extensions")
    @classmethod
    def _validate_extensions(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError(
                "reference_extensions must contain at least one extension"
            )
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }


@dataclass(frozen=True)
class StageGateConfig:
    """Correction thresholds and context limits for one stage."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    min_acceptable_score: int = DEFAULT_MIN_ACCEPTABLE_SCORE
    requires_code: bool = True
    max_files: int = 10
    entry_point_files: int = 3
    file_char_limit: int = 5000
    min_items: int = 0


STAGE_CORRECTION: dict[str, StageGateConfig] = {
    StageName.REVIEW: StageGateConfig(
        requires_code=False,
        max_files=10,
        entry_point_files=3,
        file_char_limit=5000,
        min_items=2,  # strengths and weaknesses each
    ),
    StageName.INTELLIGENCE: StageGateConfig(
        max_files=15,
        entry_point_files=5,
        file_char_limit=4000,
        min_items=3,  # design decisions
    ),
    StageName.QUESTIONS: StageGateConfig(
        min_acceptable_score=75,
        max_files=11,
        entry_point_files=3,
        file_char_limit=3500,
        min_items=40,  # questions
    ),
}

ARTIFACT_TITLES: dict[str, str] = {
    ArtifactKind.PROJECT_REVIEW: "Project Review",
    ArtifactKind.INTELLIGENCE_REPORT: "Intelligence Report",
    ArtifactKind.QUESTION_BANK: "Interview Question Bank",
    ArtifactKind.ANSWER_EVALUATION: "Answer Evaluation",
}

# Extensions counted as user-written source code
SOURCE_CODE_EXTENSIONS: frozenset[str] = frozenset({
    ".py",
    ".js",
    ".ts",
    ".tsx",
    ".jsx",
    ".java",
    ".go",
    ".rs",
    ".cs",
    ".cpp",
    ".c",
    ".h",
    ".rb",
    ".php",
})

# Never read into a snapshot
EXCLUDED_EXTENSIONS: frozenset[str] = frozenset({
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".mp4",
    ".mp3",
    ".zip",
    ".tar",
    ".gz",
    ".pdf",
    ".exe",
    ".dll",
})

EXCLUDED_FILES: frozenset[str] = frozenset({
    "package-lock.json",
    "yarn.lock",
    "poetry.lock",
    "Pipfile.lock",
    ".DS_Store",
    ".env",
    "id_rsa",
    "id_ed25519",
})

ENTRY_POINT_NAMES: frozenset[str] = frozenset({
    "main.py",
    "app.py",
    "index.js",
    "index.ts",
    "App.tsx",
    "App.jsx",
    "server.js",
    "server.ts",
    "main.java",
    "Main.java",
    "Program.cs",
    "main.go",
})

CORE_MODULE_PREFIXES: tuple[str, ...] = ("src/", "app/")

# Manifest file → framework names looked up in its content
FRAMEWORK_MANIFESTS: dict[str, tuple[str, ...]] = {
    "package.json": ("react", "express", "next", "vue", "angular"),
    "requirements.txt": ("django", "flask", "fastapi"),
    "pyproject.toml": ("django", "flask", "fastapi"),
    "pom.xml": ("spring-boot", "spring"),
    "build.gradle": ("spring-boot",),
}


def create_app_engine(
    url: str, *, echo: bool = False
) -> AsyncEngine:
    """Create async SQLite engine with WAL journal mode.

    Handles URL conversion (sqlite:/// → sqlite+aiosqlite:///)
    and sets WAL mode via a pool-connect event listener so it
    fires once per raw DBAPI connection, not per ORM session.
    """
    if url.startswith("sqlite:///"):
        db_url = "sqlite+aiosqlite:///" + url[len("sqlite:///"):]
    else:
        db_url = url
    engine = create_async_engine(db_url, echo=echo)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_wal_mode(
        dbapi_conn: object,
        _connection_record: object,
    ) -> None:
        cursor = dbapi_conn.cursor()  # type: ignore[union-attr]
        cursor.execute("PRAGMA journal_mode=WAL")  # pyright: ignore[reportUnknownMemberType]
        cursor.close()  # pyright: ignore[reportUnknownMemberType]

    return engine
