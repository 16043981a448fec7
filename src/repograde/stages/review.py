"""Stage 1: code-quality project review."""

from __future__ import annotations

import logging

from repograde.artifacts import ProjectReview
from repograde.config import STAGE_CORRECTION, StageGateConfig
from repograde.constants import ArtifactKind, StageName
from repograde.correction import basic_validator, composite_validator
from repograde.grounding import validate_review
from repograde.prompts import REVIEW_SYSTEM_PROMPT, build_stage_prompt
from repograde.stages.base import (
    StageInput,
    StageOutput,
    generate_model,
    grounding_validator,
    load_stage_context,
    make_loop,
)

logger = logging.getLogger(__name__)

REVIEW_TASK = (
    "Review this repository and return the project review JSON object."
)


def review_structure_issues(
    review: ProjectReview, gate: StageGateConfig
) -> list[str]:
    issues: list[str] = []
    if review.code_quality is None:
        issues.append("Missing code_quality section")
    if review.architecture_clarity is None:
        issues.append("Missing architecture_clarity section")
    if review.employability_signal is None:
        issues.append("Missing employability_signal section")
    if len(review.strengths) < gate.min_items:
        issues.append(
            f"Too few strengths: {len(review.strengths)}"
            f" (expected at least {gate.min_items})"
        )
    if len(review.weaknesses) < gate.min_items:
        issues.append(
            f"Too few weaknesses: {len(review.weaknesses)}"
            f" (expected at least {gate.min_items})"
        )
    return issues


async def run_review_stage(inp: StageInput) -> StageOutput[ProjectReview]:
    """Generate, validate, correct and persist the project review.

    Falls back to a metadata-only prompt when no code can be loaded.
    """
    gate = STAGE_CORRECTION[StageName.REVIEW]
    context = load_stage_context(StageName.REVIEW, inp, gate)
    summary = inp.context_map.describe()
    paths = inp.snapshot.all_paths

    async def generate(feedback: str | None) -> ProjectReview:
        user = build_stage_prompt(REVIEW_TASK, summary, context.text, feedback)
        return await generate_model(
            inp.llm, REVIEW_SYSTEM_PROMPT, user, ProjectReview
        )

    def check_structure(review: ProjectReview) -> tuple[bool, list[str]]:
        issues = review_structure_issues(review, gate)
        return not issues, issues

    validator = composite_validator([
        (
            "grounding",
            grounding_validator(lambda r: validate_review(r, paths)),
            0.5,
        ),
        ("structure", basic_validator(check_structure), 0.5),
    ])

    correction = await make_loop(gate).correct_with_retry(
        generate, validator, cancel=inp.cancel, label=StageName.REVIEW
    )
    review = correction.final_result
    grounding = validate_review(review, paths)
    await inp.store.save(inp.analysis_id, ArtifactKind.PROJECT_REVIEW, review)
    logger.info(
        "event=review_saved analysis_id=%s converged=%s score=%.1f"
        " confidence=%s",
        inp.analysis_id,
        correction.converged,
        correction.best_score,
        grounding.confidence,
    )
    return StageOutput(
        artifact=review, correction=correction, grounding=grounding
    )
