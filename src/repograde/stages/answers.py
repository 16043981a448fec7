"""Score a free-text answer against a stored interview question."""

from __future__ import annotations

import logging
from typing import Any

from repograde.artifacts import AnswerEvaluation, CriteriaScores, QuestionBank
from repograde.constants import AnswerCategory, ArtifactKind
from repograde.llm import LLMClient, parse_json_object
from repograde.prompts import (
    ANSWER_EVALUATION_SYSTEM_PROMPT,
    build_answer_prompt,
)
from repograde.repositories.protocols import ArtifactStore
from repograde.resilience.errors import ArtifactNotFound, QuestionNotFound

logger = logging.getLogger(__name__)

# Lower score bound of each answer category, highest first
_CATEGORY_FLOORS: tuple[tuple[int, AnswerCategory], ...] = (
    (85, AnswerCategory.EXCELLENT),
    (70, AnswerCategory.STRONG),
    (50, AnswerCategory.ACCEPTABLE),
    (0, AnswerCategory.WEAK),
)


def evaluation_kind(question_id: str) -> str:
    return f"{ArtifactKind.ANSWER_EVALUATION}:{question_id}"


def clamp_score(value: Any) -> int:
    """Coerce to an int in [0, 100]; unparsable values become 0."""
    try:
        score = round(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, score))


def categorize_score(score: int) -> AnswerCategory:
    for floor, category in _CATEGORY_FLOORS:
        if score >= floor:
            return category
    return AnswerCategory.WEAK


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def build_evaluation(
    question_id: str, answer: str, data: dict[str, Any]
) -> AnswerEvaluation:
    """Normalize the model's JSON into an AnswerEvaluation."""
    score = clamp_score(data.get("score", data.get("overall_score")))
    criteria: Any = data.get("criteria_breakdown") or data.get(
        "criteria_scores"
    ) or {}
    if not isinstance(criteria, dict):
        criteria = {}

    category: AnswerCategory | None = None
    raw_category = data.get("category")
    if isinstance(raw_category, str):
        try:
            category = AnswerCategory(raw_category.strip().lower())
        except ValueError:
            logger.warning(
                "event=unknown_answer_category value=%r", raw_category
            )

    return AnswerEvaluation(
        question_id=question_id,
        answer=answer,
        overall_score=score,
        criteria_scores=CriteriaScores(
            technical_accuracy=clamp_score(criteria.get("technical_accuracy")),
            completeness=clamp_score(criteria.get("completeness")),
            clarity=clamp_score(criteria.get("clarity")),
        ),
        strengths=_str_list(data.get("strengths")),
        weaknesses=_str_list(data.get("weaknesses")),
        missing_points=_str_list(data.get("missing_points")),
        example_answer=str(data.get("example_answer") or ""),
        key_terms=_str_list(data.get("key_terms")),
        feedback=str(data.get("feedback") or ""),
        category=category or categorize_score(score),
    )


async def evaluate_answer(
    store: ArtifactStore,
    llm: LLMClient,
    analysis_id: str,
    question_id: str,
    answer: str,
) -> AnswerEvaluation:
    """Evaluate ``answer`` and persist the result.

    Raises ArtifactNotFound if the analysis has no question bank and
    QuestionNotFound if the bank lacks ``question_id``.
    """
    payload = await store.get(analysis_id, ArtifactKind.QUESTION_BANK)
    if payload is None:
        raise ArtifactNotFound(analysis_id, ArtifactKind.QUESTION_BANK)
    bank = QuestionBank.model_validate(payload)
    question = bank.find(question_id)
    if question is None:
        raise QuestionNotFound(analysis_id, question_id)

    user = build_answer_prompt(
        question.question, question.expected_answer.key_points, answer
    )
    result = await llm.complete(ANSWER_EVALUATION_SYSTEM_PROMPT, user)
    evaluation = build_evaluation(
        question_id, answer, parse_json_object(result.content)
    )
    await store.save(analysis_id, evaluation_kind(question_id), evaluation)
    logger.info(
        "event=answer_evaluated analysis_id=%s question_id=%s score=%d"
        " category=%s",
        analysis_id,
        question_id,
        evaluation.overall_score,
        evaluation.category,
    )
    return evaluation
