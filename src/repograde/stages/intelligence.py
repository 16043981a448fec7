"""Stage 2: architecture intelligence report."""

from __future__ import annotations

import logging

from repograde.artifacts import IntelligenceReport
from repograde.config import STAGE_CORRECTION, StageGateConfig
from repograde.constants import ArtifactKind, StageName
from repograde.correction import basic_validator, composite_validator
from repograde.grounding import (
    validate_design_decision,
    validate_intelligence_report,
)
from repograde.prompts import INTELLIGENCE_SYSTEM_PROMPT, build_stage_prompt
from repograde.stages.base import (
    StageInput,
    StageOutput,
    generate_model,
    grounding_validator,
    load_stage_context,
    make_loop,
)

logger = logging.getLogger(__name__)

INTELLIGENCE_TASK = (
    "Analyze the architecture of this repository and return the"
    " intelligence report JSON object."
)


def ungrounded_decisions(
    report: IntelligenceReport, paths: frozenset[str]
) -> list[str]:
    """One issue per design decision without a single verified file."""
    issues: list[str] = []
    for decision in report.design_decisions:
        result = validate_design_decision(decision, paths)
        if not result.valid_references:
            issues.append(
                f"Design decision '{decision.title}' cites no existing file"
            )
    return issues


def intelligence_structure_issues(
    report: IntelligenceReport, gate: StageGateConfig
) -> list[str]:
    issues: list[str] = []
    if not report.system_architecture.overview.strip():
        issues.append("Missing system architecture overview")
    if len(report.design_decisions) < gate.min_items:
        issues.append(
            f"Too few design decisions: {len(report.design_decisions)}"
            f" (expected at least {gate.min_items})"
        )
    if not report.technical_tradeoffs:
        issues.append("No technical tradeoffs described")
    return issues


async def run_intelligence_stage(
    inp: StageInput,
) -> StageOutput[IntelligenceReport]:
    """Generate, validate, correct and persist the intelligence report.

    Raises ContextUnavailable when the snapshot has no usable code.
    """
    gate = STAGE_CORRECTION[StageName.INTELLIGENCE]
    context = load_stage_context(StageName.INTELLIGENCE, inp, gate)
    summary = inp.context_map.describe()
    paths = inp.snapshot.all_paths

    async def generate(feedback: str | None) -> IntelligenceReport:
        user = build_stage_prompt(
            INTELLIGENCE_TASK, summary, context.text, feedback
        )
        return await generate_model(
            inp.llm, INTELLIGENCE_SYSTEM_PROMPT, user, IntelligenceReport
        )

    def check_structure(
        report: IntelligenceReport,
    ) -> tuple[bool, list[str]]:
        issues = intelligence_structure_issues(report, gate)
        return not issues, issues

    validator = composite_validator([
        (
            "grounding",
            grounding_validator(
                lambda r: validate_intelligence_report(r, paths),
                lambda r: ungrounded_decisions(r, paths),
            ),
            0.6,
        ),
        ("structure", basic_validator(check_structure), 0.4),
    ])

    correction = await make_loop(gate).correct_with_retry(
        generate, validator, cancel=inp.cancel, label=StageName.INTELLIGENCE
    )
    report = correction.final_result
    grounding = validate_intelligence_report(report, paths)
    await inp.store.save(
        inp.analysis_id, ArtifactKind.INTELLIGENCE_REPORT, report
    )
    logger.info(
        "event=intelligence_saved analysis_id=%s converged=%s score=%.1f"
        " decisions=%d confidence=%s",
        inp.analysis_id,
        correction.converged,
        correction.best_score,
        len(report.design_decisions),
        grounding.confidence,
    )
    return StageOutput(
        artifact=report, correction=correction, grounding=grounding
    )
