"""Stage 3: grounded interview question bank."""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from pydantic import ValidationError

from repograde.artifacts import (
    InterviewQuestion,
    QuestionBank,
    SelfCorrectionReport,
)
from repograde.config import STAGE_CORRECTION, StageGateConfig
from repograde.constants import (
    ArtifactKind,
    ConfidenceTier,
    Difficulty,
    QuestionCategory,
    StageName,
)
from repograde.correction import ValidationResult, grounding_score
from repograde.grounding import validate_questions
from repograde.llm import parse_json_array
from repograde.prompts import QUESTIONS_SYSTEM_PROMPT, build_stage_prompt
from repograde.resilience.errors import GenerationError
from repograde.stages.base import (
    StageInput,
    StageOutput,
    load_stage_context,
    make_loop,
)
from repograde.stages.tracks import (
    category_counts,
    difficulty_distribution,
    organize_tracks,
)

logger = logging.getLogger(__name__)

QUESTIONS_TASK = (
    "Write the interview question bank for this repository and return it"
    ' as {"questions": [...]}.'
)

# Per-category floor enforced by the validator
MIN_CATEGORY_QUESTIONS: dict[QuestionCategory, int] = {
    QuestionCategory.ARCHITECTURE: 10,
    QuestionCategory.IMPLEMENTATION: 10,
}
TARGET_QUESTION_COUNT = 50
EXPECTED_RANGE = "45-60"

# Keys are lowercase letters only ("Trade-Offs" → "tradeoffs")
_CATEGORY_ALIASES: dict[str, QuestionCategory] = {
    "architecture": QuestionCategory.ARCHITECTURE,
    "architectural": QuestionCategory.ARCHITECTURE,
    "arch": QuestionCategory.ARCHITECTURE,
    "systemdesign": QuestionCategory.ARCHITECTURE,
    "implementation": QuestionCategory.IMPLEMENTATION,
    "impl": QuestionCategory.IMPLEMENTATION,
    "coding": QuestionCategory.IMPLEMENTATION,
    "tradeoffs": QuestionCategory.TRADEOFFS,
    "tradeoff": QuestionCategory.TRADEOFFS,
    "designtradeoffs": QuestionCategory.TRADEOFFS,
    "scalability": QuestionCategory.SCALABILITY,
    "scaling": QuestionCategory.SCALABILITY,
    "designpatterns": QuestionCategory.DESIGN_PATTERNS,
    "designpattern": QuestionCategory.DESIGN_PATTERNS,
    "patterns": QuestionCategory.DESIGN_PATTERNS,
    "security": QuestionCategory.SECURITY,
    "performance": QuestionCategory.PERFORMANCE,
    "perf": QuestionCategory.PERFORMANCE,
    "debugging": QuestionCategory.DEBUGGING,
    "debug": QuestionCategory.DEBUGGING,
    "troubleshooting": QuestionCategory.DEBUGGING,
}

_DIFFICULTY_ALIASES: dict[str, Difficulty] = {
    "junior": Difficulty.JUNIOR,
    "entrylevel": Difficulty.JUNIOR,
    "entry": Difficulty.JUNIOR,
    "mid": Difficulty.MID_LEVEL,
    "midlevel": Difficulty.MID_LEVEL,
    "intermediate": Difficulty.MID_LEVEL,
    "senior": Difficulty.SENIOR,
    "staff": Difficulty.STAFF,
    "principal": Difficulty.STAFF,
}

_NON_LETTERS = re.compile(r"[^a-z]")


def _alias_key(value: object) -> str:
    return _NON_LETTERS.sub("", str(value).lower())


def normalize_category(value: object) -> QuestionCategory | None:
    """Map a category variant to its enum; None (logged) if unknown."""
    category = _CATEGORY_ALIASES.get(_alias_key(value))
    if category is None:
        logger.warning("event=unknown_question_category value=%r", value)
    return category


def normalize_difficulty(value: object) -> Difficulty | None:
    difficulty = _DIFFICULTY_ALIASES.get(_alias_key(value))
    if difficulty is None:
        logger.warning("event=unknown_question_difficulty value=%r", value)
    return difficulty


def coerce_questions(items: list[Any]) -> list[InterviewQuestion]:
    """Build questions from raw JSON items, dropping unusable ones.

    Missing or duplicate ids are replaced with ``Q<position>``, or the
    next free ``Q<n>`` after it when that id is already taken.
    """
    questions: list[InterviewQuestion] = []
    seen_ids: set[str] = set()
    for position, raw in enumerate(items, 1):
        if not isinstance(raw, dict):
            logger.warning(
                "event=question_dropped position=%d reason=not_an_object",
                position,
            )
            continue
        category = normalize_category(raw.get("category", ""))
        difficulty = normalize_difficulty(raw.get("difficulty", ""))
        if category is None or difficulty is None:
            continue

        question_id = str(raw.get("question_id") or "").strip()
        if not question_id or question_id in seen_ids:
            fallback = position
            question_id = f"Q{fallback:03d}"
            while question_id in seen_ids:
                fallback += 1
                question_id = f"Q{fallback:03d}"
        data = {
            **raw,
            "question_id": question_id,
            "category": category,
            "difficulty": difficulty,
        }
        try:
            question = InterviewQuestion.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "event=question_dropped position=%d reason=%s",
                position,
                exc.errors()[0]["msg"] if exc.errors() else "invalid",
            )
            continue
        seen_ids.add(question_id)
        questions.append(question)
    return questions


def score_questions(
    questions: list[InterviewQuestion],
    paths: frozenset[str],
    gate: StageGateConfig,
    extensions: list[str] | None = None,
) -> ValidationResult:
    """Weighted grounding (40%), count (30%) and validity (30%) score."""
    bulk = validate_questions(questions, paths, extensions)
    overall = bulk.overall_result
    total = len(questions)
    issues: list[str] = []

    if overall.confidence == ConfidenceTier.INSUFFICIENT:
        issues.append(
            f"Poor grounding: {len(bulk.invalid_items)} questions"
            " reference non-existent files"
        )
    if overall.invalid_references:
        listed = ", ".join(dict.fromkeys(overall.invalid_references))
        issues.append(f"Invalid file references: {listed}")
    if total < gate.min_items:
        issues.append(
            f"Too few questions: {total} (expected {EXPECTED_RANGE})"
        )
    counts = category_counts(questions)
    for category, minimum in MIN_CATEGORY_QUESTIONS.items():
        if counts[category] < minimum:
            issues.append(
                f"Too few {category} questions: {counts[category]}"
                f" (expected at least {minimum})"
            )

    count_score = min(100.0, total / TARGET_QUESTION_COUNT * 100)
    valid_ratio = len(bulk.valid_items) / total if total else 0.0
    score = math.floor(
        grounding_score(overall.confidence) * 0.4
        + count_score * 0.3
        + valid_ratio * 100 * 0.3
        + 0.5
    )
    return ValidationResult(
        is_valid=not issues and score >= gate.min_acceptable_score,
        score=score,
        feedback="; ".join(issues) if issues else "All checks passed",
        issues=tuple(issues),
    )


async def run_questions_stage(
    inp: StageInput,
) -> StageOutput[QuestionBank]:
    """Generate, validate, correct and persist the question bank.

    Raises ContextUnavailable when the snapshot has no usable code.
    """
    gate = STAGE_CORRECTION[StageName.QUESTIONS]
    context = load_stage_context(StageName.QUESTIONS, inp, gate)
    summary = inp.context_map.describe()
    paths = inp.snapshot.all_paths
    extensions = inp.settings.reference_extensions

    async def generate(feedback: str | None) -> list[InterviewQuestion]:
        user = build_stage_prompt(
            QUESTIONS_TASK, summary, context.text, feedback
        )
        result = await inp.llm.complete(QUESTIONS_SYSTEM_PROMPT, user)
        questions = coerce_questions(
            parse_json_array(result.content, key="questions")
        )
        if not questions:
            msg = "No usable questions in model output"
            raise GenerationError(msg)
        return questions

    async def validate(
        questions: list[InterviewQuestion],
    ) -> ValidationResult:
        return score_questions(questions, paths, gate, extensions)

    correction = await make_loop(gate).correct_with_retry(
        generate, validate, cancel=inp.cancel, label=StageName.QUESTIONS
    )
    questions = correction.final_result
    bulk = validate_questions(questions, paths, extensions)
    scores = correction.scores
    bank = QuestionBank(
        questions=questions,
        tracks=organize_tracks(questions),
        category_counts=category_counts(questions),
        difficulty_distribution=difficulty_distribution(questions),
        grounding_confidence=bulk.overall_result.confidence,
        self_correction=SelfCorrectionReport(
            iterations=correction.total_attempts,
            converged=correction.converged,
            initial_score=scores[0] if scores else 0.0,
            final_score=correction.best_score,
            corrections_feedback=correction.feedback_history,
        ),
    )
    await inp.store.save(inp.analysis_id, ArtifactKind.QUESTION_BANK, bank)
    logger.info(
        "event=questions_saved analysis_id=%s questions=%d converged=%s"
        " score=%.1f confidence=%s",
        inp.analysis_id,
        len(questions),
        correction.converged,
        correction.best_score,
        bank.grounding_confidence,
    )
    return StageOutput(
        artifact=bank,
        correction=correction,
        grounding=bulk.overall_result,
    )
