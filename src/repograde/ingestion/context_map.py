"""Project context map: entry points, core modules, frameworks."""

from __future__ import annotations

from pathlib import PurePosixPath

from pydantic import BaseModel, Field

from repograde.config import (
    CORE_MODULE_PREFIXES,
    ENTRY_POINT_NAMES,
    FRAMEWORK_MANIFESTS,
    SOURCE_CODE_EXTENSIONS,
)
from repograde.ingestion.snapshot import RepositorySnapshot


class ProjectContextMap(BaseModel):
    """Structural summary of a snapshot used to rank files for prompts."""

    entry_points: list[str] = Field(default_factory=lambda: list[str]())
    core_modules: list[str] = Field(default_factory=lambda: list[str]())
    frameworks: list[str] = Field(default_factory=lambda: list[str]())
    user_code_files: list[str] = Field(default_factory=lambda: list[str]())
    total_files: int = 0
    total_size: int = 0

    def describe(self) -> str:
        """One-paragraph metadata summary for prompts without code."""
        frameworks = ", ".join(self.frameworks) or "none detected"
        entry = ", ".join(self.entry_points[:5]) or "none detected"
        return (
            f"Project has {self.total_files} files"
            f" ({self.total_size} bytes)."
            f" Frameworks: {frameworks}."
            f" Entry points: {entry}."
            f" User code files: {len(self.user_code_files)}."
        )


def build_context_map(snapshot: RepositorySnapshot) -> ProjectContextMap:
    """Classify snapshot files by role."""
    entry_points: list[str] = []
    core_modules: list[str] = []
    frameworks: list[str] = []
    user_code: list[str] = []

    for f in snapshot.files:
        p = PurePosixPath(f.path)
        if p.name in ENTRY_POINT_NAMES:
            entry_points.append(f.path)

        markers = FRAMEWORK_MANIFESTS.get(p.name)
        if markers:
            lowered = f.content.lower()
            for marker in markers:
                if marker in lowered and marker not in frameworks:
                    frameworks.append(marker)

        if p.suffix.lower() in SOURCE_CODE_EXTENSIONS:
            user_code.append(f.path)
            if f.path.startswith(CORE_MODULE_PREFIXES):
                core_modules.append(f.path)

    return ProjectContextMap(
        entry_points=entry_points,
        core_modules=core_modules,
        frameworks=frameworks,
        user_code_files=user_code,
        total_files=len(snapshot.files),
        total_size=snapshot.total_size,
    )
