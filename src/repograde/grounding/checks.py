"""Artifact adapters: collect file references, then validate them."""

from __future__ import annotations

from collections.abc import Iterable

from repograde.artifacts import (
    DesignDecision,
    FileReference,
    IntelligenceReport,
    InterviewQuestion,
    ProjectReview,
    reference_paths,
)
from repograde.constants import ConfidenceTier
from repograde.grounding.extractor import extract_references
from repograde.grounding.schemas import BulkGroundingResult, GroundingResult
from repograde.grounding.validator import validate_references


def _collect(groups: Iterable[list[FileReference]]) -> list[str]:
    refs: list[str] = []
    for group in groups:
        refs.extend(reference_paths(group))
    return refs


def review_references(review: ProjectReview) -> list[str]:
    groups: list[list[FileReference]] = [
        *(s.file_references for s in review.strengths),
        *(w.file_references for w in review.weaknesses),
        *(c.file_references for c in review.critical_issues),
        *(i.file_references for i in review.improvement_areas),
    ]
    if review.architecture_clarity is not None:
        clarity = review.architecture_clarity
        groups.extend(p.file_references for p in clarity.design_patterns)
        groups.extend(p.file_references for p in clarity.anti_patterns)
    return _collect(groups)


def validate_review(
    review: ProjectReview, all_paths: Iterable[str]
) -> GroundingResult:
    """Validate every file reference cited anywhere in a review."""
    return validate_references(review_references(review), all_paths)


def validate_design_decision(
    decision: DesignDecision, all_paths: Iterable[str]
) -> GroundingResult:
    return validate_references(
        reference_paths(decision.file_references), all_paths
    )


def intelligence_references(report: IntelligenceReport) -> list[str]:
    return _collect([
        *(d.file_references for d in report.design_decisions),
        *(
            b.file_references
            for b in report.scalability_analysis.bottlenecks
        ),
    ])


def validate_intelligence_report(
    report: IntelligenceReport, all_paths: Iterable[str]
) -> GroundingResult:
    """Validate design decision and bottleneck references."""
    return validate_references(intelligence_references(report), all_paths)


def question_references(
    question: InterviewQuestion,
    extensions: Iterable[str] | None = None,
) -> list[str]:
    """Context references followed by file names mentioned in the text."""
    refs = reference_paths(question.context.file_references)
    refs.extend(extract_references(question.question, extensions))
    return refs


def validate_question(
    question: InterviewQuestion,
    all_paths: Iterable[str],
    extensions: Iterable[str] | None = None,
) -> GroundingResult:
    return validate_references(
        question_references(question, extensions), all_paths
    )


def validate_questions(
    questions: list[InterviewQuestion],
    all_paths: Iterable[str],
    extensions: Iterable[str] | None = None,
) -> BulkGroundingResult:
    """Split questions by grounding and validate their union.

    A question is kept unless its own confidence is ``insufficient``,
    so partially grounded questions land in ``valid_items``. The
    overall result re-validates every reference from every question.
    """
    paths = list(all_paths)
    valid_items: list[InterviewQuestion] = []
    invalid_items: list[InterviewQuestion] = []
    all_refs: list[str] = []

    for question in questions:
        result = validate_question(question, paths, extensions)
        all_refs.extend(result.valid_references)
        all_refs.extend(result.invalid_references)
        if result.is_valid or result.confidence != ConfidenceTier.INSUFFICIENT:
            valid_items.append(question)
        else:
            invalid_items.append(question)

    return BulkGroundingResult(
        valid_items=valid_items,
        invalid_items=invalid_items,
        overall_result=validate_references(all_refs, paths),
    )
