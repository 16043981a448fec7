"""Pipeline orchestration — snapshot once, run stages concurrently."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from repograde.config import Settings
from repograde.constants import (
    ID_HEX_LENGTH,
    StageName,
    StageOutcome,
)
from repograde.ingestion.context_map import build_context_map
from repograde.ingestion.snapshot import RepositorySnapshot, load_snapshot
from repograde.llm import LLMClient
from repograde.logger import AnalysisLogger
from repograde.pipeline import ParallelGroup, PipelineStage, StageResult
from repograde.repositories.protocols import ArtifactStore
from repograde.resilience.errors import ArtifactNotFound
from repograde.stages import (
    StageInput,
    StageOutput,
    run_intelligence_stage,
    run_questions_stage,
    run_review_stage,
)

logger = logging.getLogger(__name__)

StageRunner = Callable[[StageInput], Awaitable[StageOutput[Any]]]

STAGE_RUNNERS: dict[StageName, StageRunner] = {
    StageName.REVIEW: run_review_stage,
    StageName.INTELLIGENCE: run_intelligence_stage,
    StageName.QUESTIONS: run_questions_stage,
}


@dataclass
class StageStatus:
    """Status of a pipeline stage."""

    name: str
    ok: bool
    duration_ms: float = 0.0
    error: str | None = None
    converged: bool | None = None
    best_score: float | None = None
    attempts: int | None = None
    confidence: str | None = None


@dataclass
class AnalysisResult:
    """Full result of a pipeline run."""

    analysis_id: str
    repo_path: str
    stages: list[StageStatus] = field(
        default_factory=lambda: list[StageStatus]()
    )
    outputs: dict[str, StageOutput[Any]] = field(
        default_factory=lambda: dict[str, StageOutput[Any]]()
    )
    total_duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return bool(self.stages) and all(s.ok for s in self.stages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "analysis_id": self.analysis_id,
            "repo_path": self.repo_path,
            "ok": self.ok,
            "total_duration_ms": round(self.total_duration_ms, 1),
            "stages": [
                {
                    "name": s.name,
                    "ok": s.ok,
                    "duration_ms": round(s.duration_ms, 1),
                    "error": s.error,
                    "converged": s.converged,
                    "best_score": s.best_score,
                    "attempts": s.attempts,
                    "confidence": s.confidence,
                }
                for s in self.stages
            ],
        }


def parse_stage_names(raw: list[str] | None) -> list[StageName]:
    """Resolve stage names; None means every stage in pipeline order.

    Raises ValueError on an unknown name.
    """
    if not raw:
        return list(STAGE_RUNNERS)
    names: list[StageName] = []
    for item in raw:
        try:
            name = StageName(item.strip().lower())
        except ValueError:
            msg = (
                f"Unknown stage '{item}'."
                f" Valid: {', '.join(STAGE_RUNNERS)}"
            )
            raise ValueError(msg) from None
        if name not in names:
            names.append(name)
    return names


async def run_analysis(
    repo_path: str | Path,
    store: ArtifactStore,
    settings: Settings | None = None,
    *,
    llm: LLMClient | None = None,
    stages: list[StageName] | None = None,
    analysis_id: str | None = None,
    cancel: asyncio.Event | None = None,
    analysis_logger: AnalysisLogger | None = None,
) -> AnalysisResult:
    """Run the analysis pipeline over a local repository.

    Phases:
      1. Snapshot: read the repository once into an immutable snapshot
      2. Stages: review, intelligence and questions run concurrently
         over the shared snapshot, each bounded by the stage timeout

    A failing stage is recorded with its error; the others continue.
    """
    cfg = settings or Settings()
    aid = analysis_id or uuid.uuid4().hex[:ID_HEX_LENGTH]
    result = AnalysisResult(analysis_id=aid, repo_path=str(repo_path))
    t0 = time.monotonic()

    snapshot, status = _run_snapshot(repo_path, cfg)
    result.stages.append(status)
    if snapshot is None:
        result.total_duration_ms = _elapsed(t0)
        if analysis_logger is not None:
            analysis_logger.log_error(aid, "snapshot", status.error or "")
        return result

    inp = StageInput(
        analysis_id=aid,
        snapshot=snapshot,
        context_map=build_context_map(snapshot),
        llm=llm or LLMClient(cfg),
        store=store,
        settings=cfg,
        cancel=cancel,
    )
    group = ParallelGroup[StageInput](
        name="generation",
        stages=[
            PipelineStage(
                name=str(name),
                execute=STAGE_RUNNERS[name],
                timeout=cfg.stage_timeout_seconds,
            )
            for name in (stages or list(STAGE_RUNNERS))
        ],
        max_concurrency=cfg.stage_max_concurrency,
    )
    for stage_result in await group.execute(inp):
        result.stages.append(_stage_status(stage_result))
        if stage_result.output is not None:
            result.outputs[stage_result.stage_name] = stage_result.output
        if analysis_logger is not None:
            _log_stage(analysis_logger, aid, stage_result)

    result.total_duration_ms = _elapsed(t0)
    logger.info(
        "event=analysis_done analysis_id=%s ok=%s duration_ms=%.0f",
        aid,
        result.ok,
        result.total_duration_ms,
    )
    return result


async def get_artifact(
    store: ArtifactStore, analysis_id: str, kind: str
) -> dict[str, Any]:
    """Load a stored artifact payload; raises ArtifactNotFound."""
    payload = await store.get(analysis_id, kind)
    if payload is None:
        raise ArtifactNotFound(analysis_id, kind)
    return payload


# -- Helpers --


def _run_snapshot(
    repo_path: str | Path, cfg: Settings
) -> tuple[RepositorySnapshot | None, StageStatus]:
    t0 = time.monotonic()
    try:
        snapshot = load_snapshot(repo_path, cfg)
    except (OSError, ValueError) as exc:
        logger.exception("event=stage_failed stage=snapshot")
        return None, StageStatus(
            name="snapshot",
            ok=False,
            duration_ms=_elapsed(t0),
            error=str(exc),
        )
    return snapshot, StageStatus(
        name="snapshot", ok=True, duration_ms=_elapsed(t0)
    )


def _stage_status(stage_result: StageResult[Any]) -> StageStatus:
    status = StageStatus(
        name=stage_result.stage_name,
        ok=stage_result.status == StageOutcome.COMPLETED,
        duration_ms=stage_result.duration_ms,
        error=stage_result.error,
    )
    output = stage_result.output
    if isinstance(output, StageOutput):
        status.converged = output.correction.converged
        status.best_score = output.correction.best_score
        status.attempts = output.correction.total_attempts
        status.confidence = str(output.grounding.confidence)
    return status


def _log_stage(
    analysis_logger: AnalysisLogger,
    analysis_id: str,
    stage_result: StageResult[Any],
) -> None:
    analysis_logger.log_stage(
        analysis_id,
        stage_result.stage_name,
        str(stage_result.status),
        stage_result.duration_ms,
        stage_result.error,
    )
    output = stage_result.output
    if isinstance(output, StageOutput):
        analysis_logger.log_correction(
            analysis_id,
            stage_result.stage_name,
            output.correction.total_attempts,
            output.correction.converged,
            output.correction.scores,
        )


def _elapsed(t0: float) -> float:
    return (time.monotonic() - t0) * 1000
