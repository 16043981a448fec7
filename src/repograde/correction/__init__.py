"""Self-correction: retry generation with validator feedback."""

from repograde.correction.loop import (
    CorrectionAttempt,
    CorrectionResult,
    SelfCorrectionLoop,
    ValidationResult,
    synthesize_feedback,
)
from repograde.correction.validators import (
    basic_validator,
    composite_validator,
    grounding_score,
)

__all__ = [
    "CorrectionAttempt",
    "CorrectionResult",
    "SelfCorrectionLoop",
    "ValidationResult",
    "basic_validator",
    "composite_validator",
    "grounding_score",
    "synthesize_feedback",
]
