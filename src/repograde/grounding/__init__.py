"""Grounding: verify generated file references against the repository."""

from repograde.grounding.checks import (
    validate_design_decision,
    validate_intelligence_report,
    validate_question,
    validate_questions,
    validate_review,
)
from repograde.grounding.extractor import extract_references
from repograde.grounding.paths import (
    is_library_path,
    normalize_path,
    partition_library_references,
)
from repograde.grounding.schemas import BulkGroundingResult, GroundingResult
from repograde.grounding.validator import (
    confidence_for,
    format_grounding_report,
    validate_references,
)

__all__ = [
    "BulkGroundingResult",
    "GroundingResult",
    "confidence_for",
    "extract_references",
    "format_grounding_report",
    "is_library_path",
    "normalize_path",
    "partition_library_references",
    "validate_design_decision",
    "validate_intelligence_report",
    "validate_question",
    "validate_questions",
    "validate_review",
]
