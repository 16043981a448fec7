"""Shared plumbing for the generation stages."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from repograde.config import StageGateConfig, Settings
from repograde.constants import ERROR_TRUNCATION_CHARS
from repograde.correction import (
    CorrectionResult,
    SelfCorrectionLoop,
    ValidationResult,
    grounding_score,
)
from repograde.correction.loop import Validator
from repograde.grounding import (
    GroundingResult,
    format_grounding_report,
    partition_library_references,
)
from repograde.ingestion.budget import (
    CodeContext,
    TokenBudget,
    build_code_context,
)
from repograde.ingestion.context_map import ProjectContextMap
from repograde.ingestion.snapshot import RepositorySnapshot
from repograde.llm import LLMClient, parse_json_object
from repograde.repositories.protocols import ArtifactStore
from repograde.resilience.errors import ContextUnavailable, GenerationError

logger = logging.getLogger(__name__)

# Invalid references listed in a single issue line
_MAX_LISTED_REFERENCES = 10


@dataclass
class StageInput:
    """Collaborators and read-only inputs handed to every stage."""

    analysis_id: str
    snapshot: RepositorySnapshot
    context_map: ProjectContextMap
    llm: LLMClient
    store: ArtifactStore
    settings: Settings
    cancel: asyncio.Event | None = None


@dataclass(frozen=True)
class StageOutput[T]:
    """Persisted artifact plus the correction history that produced it."""

    artifact: T
    correction: CorrectionResult[Any]
    grounding: GroundingResult


def load_stage_context(
    stage: str, inp: StageInput, gate: StageGateConfig
) -> CodeContext:
    """Build the stage's code context.

    Raises ContextUnavailable when no file could be loaded and the
    stage requires code.
    """
    context = build_code_context(
        inp.snapshot,
        inp.context_map,
        TokenBudget(inp.settings.context_max_tokens),
        max_files=gate.max_files,
        entry_point_files=gate.entry_point_files,
        file_char_limit=min(
            gate.file_char_limit, inp.settings.context_file_char_limit
        ),
    )
    if context.is_empty:
        if gate.requires_code:
            raise ContextUnavailable(
                stage,
                f"{inp.context_map.total_files} files in snapshot,"
                " none usable as code context",
            )
        logger.warning(
            "event=stage_metadata_only stage=%s analysis_id=%s",
            stage,
            inp.analysis_id,
        )
    else:
        logger.info(
            "event=stage_context stage=%s files=%d truncated=%d",
            stage,
            len(context.files),
            len(context.truncated),
        )
    return context


def make_loop(gate: StageGateConfig) -> SelfCorrectionLoop:
    return SelfCorrectionLoop(
        max_attempts=gate.max_attempts,
        min_acceptable_score=gate.min_acceptable_score,
    )


async def generate_model[M: BaseModel](
    llm: LLMClient,
    system: str,
    user: str,
    model: type[M],
) -> M:
    """Complete, parse the JSON object and validate it into ``model``."""
    result = await llm.complete(system, user)
    data = parse_json_object(result.content)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        msg = (
            f"{model.__name__} did not match the expected schema:"
            f" {str(exc)[:ERROR_TRUNCATION_CHARS]}"
        )
        raise GenerationError(msg) from exc


def grounding_issues(result: GroundingResult) -> list[str]:
    """Issue lines describing what is wrong with a grounding result."""
    issues: list[str] = []
    if result.total_references == 0:
        issues.append("No file references cited")
        return issues
    user_refs, library_refs = partition_library_references(
        result.invalid_references
    )
    if user_refs:
        listed = ", ".join(user_refs[:_MAX_LISTED_REFERENCES])
        issues.append(f"Invalid file references: {listed}")
    if library_refs:
        listed = ", ".join(library_refs[:_MAX_LISTED_REFERENCES])
        issues.append(f"References to library or generated code: {listed}")
    return issues


def grounding_validator[T](
    check: Callable[[T], GroundingResult],
    extra_issues: Callable[[T], list[str]] | None = None,
) -> Validator[T]:
    """Validator scoring an artifact by its grounding confidence tier.

    Valid when no reference is invalid and no extra issue is reported.
    """

    async def _validate(artifact: T) -> ValidationResult:
        result = check(artifact)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "event=grounding_report\n%s", format_grounding_report(result)
            )
        issues = grounding_issues(result)
        if extra_issues is not None:
            issues.extend(extra_issues(artifact))
        is_valid = result.is_valid and not issues
        return ValidationResult(
            is_valid=is_valid,
            score=grounding_score(result.confidence),
            feedback=(
                f"Grounding confidence: {result.confidence}"
                f" ({len(result.valid_references)}/"
                f"{result.total_references} references verified)"
            ),
            issues=tuple(issues),
        )

    return _validate

