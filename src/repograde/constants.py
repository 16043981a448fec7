"""Shared constants — single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON, SQL,
log lines) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class ConfidenceTier(StrEnum):
    """How well a set of file references is grounded in the repository."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT = "insufficient"


class ArtifactKind(StrEnum):
    """Persisted artifact identifiers, one row per analysis and kind."""

    PROJECT_REVIEW = "project_review"
    INTELLIGENCE_REPORT = "intelligence_report"
    QUESTION_BANK = "question_bank"
    ANSWER_EVALUATION = "answer_evaluation"


class StageName(StrEnum):
    """Pipeline stages run by the orchestrator."""

    REVIEW = "review"
    INTELLIGENCE = "intelligence"
    QUESTIONS = "questions"


class StageOutcome(StrEnum):
    """Outcome of an individual pipeline stage execution."""

    COMPLETED = "completed"
    FAILED = "failed"


class QuestionCategory(StrEnum):
    """Canonical interview question categories."""

    ARCHITECTURE = "architecture"
    IMPLEMENTATION = "implementation"
    TRADEOFFS = "tradeoffs"
    SCALABILITY = "scalability"
    DESIGN_PATTERNS = "designPatterns"
    SECURITY = "security"
    PERFORMANCE = "performance"
    DEBUGGING = "debugging"


class Difficulty(StrEnum):
    """Canonical interview question difficulty levels."""

    JUNIOR = "junior"
    MID_LEVEL = "mid-level"
    SENIOR = "senior"
    STAFF = "staff"


class AnswerCategory(StrEnum):
    """Coarse label for a scored interview answer."""

    WEAK = "weak"
    ACCEPTABLE = "acceptable"
    STRONG = "strong"
    EXCELLENT = "excellent"


# ── Grounding ────────────────────────────────────────────

DEFAULT_REFERENCE_EXTENSIONS: tuple[str, ...] = (
    "py",
    "js",
    "ts",
    "tsx",
    "jsx",
    "java",
    "go",
    "rs",
    "cs",
    "cpp",
    "c",
    "h",
    "rb",
    "php",
)

# Ratio thresholds for ConfidenceTier (valid / total)
HIGH_CONFIDENCE_RATIO = 0.9
MEDIUM_CONFIDENCE_RATIO = 0.7
LOW_CONFIDENCE_RATIO = 0.5

# Validator sub-score per tier
GROUNDING_TIER_SCORES: dict[ConfidenceTier, int] = {
    ConfidenceTier.HIGH: 100,
    ConfidenceTier.MEDIUM: 80,
    ConfidenceTier.LOW: 60,
    ConfidenceTier.INSUFFICIENT: 30,
}

# ── Self-Correction ──────────────────────────────────────

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_ACCEPTABLE_SCORE = 70
BASIC_VALIDATOR_ISSUE_PENALTY = 20

# ── Circuit Breaker Configuration ────────────────────────

CB_LLM_FAILURE_THRESHOLD = 5
CB_LLM_RECOVERY_TIMEOUT = 30

# ── Retry Strategy ───────────────────────────────────────

RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 2
RETRY_MAX_WAIT = 30

# ── LLM Output ───────────────────────────────────────────

LLM_MAX_OUTPUT_TOKENS = 4096

# ── Context Assembly ─────────────────────────────────────

TRUNCATION_MARKER = "\n... (truncated)"
SKIPPED_FILES_LISTED = 20

# ── Misc ─────────────────────────────────────────────────

BINARY_DETECTION_BUFFER = 8192
ERROR_TRUNCATION_CHARS = 200
ID_HEX_LENGTH = 12

# ── Token Estimation ────────────────────────────────────

CHARS_PER_TOKEN_ESTIMATE = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate using chars-per-token ratio."""
    return -(-len(text) // CHARS_PER_TOKEN_ESTIMATE)
