"""Error taxonomy and classification for structured error handling.

Domain errors separate non-retryable precondition failures (no code to
ground against) from retryable generation failures (model error,
unparsable output). ``classify_error`` buckets infrastructure
exceptions so the correction loop knows which ones are worth a retry.
"""

from __future__ import annotations

import asyncio
from enum import Enum


class RepogradeError(Exception):
    """Base class for all repograde errors."""


class ContextUnavailable(RepogradeError):
    """No code could be loaded for a stage that requires code context."""

    def __init__(self, stage: str, detail: str = "") -> None:
        self.stage = stage
        message = f"No code context available for stage '{stage}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class GenerationError(RepogradeError):
    """The model call failed or returned output that could not be parsed."""


class CorrectionCancelled(RepogradeError):
    """The correction loop was cancelled between attempts."""

    def __init__(self, completed_attempts: int) -> None:
        self.completed_attempts = completed_attempts
        super().__init__(
            f"Correction cancelled after {completed_attempts} attempt(s)"
        )


class ArtifactNotFound(RepogradeError):
    """No artifact of the requested kind is stored for the analysis."""

    def __init__(self, analysis_id: str, kind: str) -> None:
        self.analysis_id = analysis_id
        self.kind = kind
        super().__init__(f"No {kind} stored for analysis '{analysis_id}'")


class QuestionNotFound(RepogradeError):
    """The question id does not exist in the stored question bank."""

    def __init__(self, analysis_id: str, question_id: str) -> None:
        self.analysis_id = analysis_id
        self.question_id = question_id
        super().__init__(
            f"Question '{question_id}' not found in analysis '{analysis_id}'"
        )


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, network errors — retryable
    SERVER = "server"  # 500, 502, 503 — retryable
    TIMEOUT = "timeout"  # deadline exceeded — retryable with backoff
    CLIENT = "client"  # 400, 401, 403 — do NOT retry
    UNKNOWN = "unknown"  # unclassified — do NOT retry


def classify_error(error: Exception) -> ErrorClass:
    """Classify an error to determine handling strategy.

    Checks structured attributes first (status_code), falls back
    to string matching for untyped exceptions.
    """
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        if status_code == 429:
            return ErrorClass.TRANSIENT
        if 400 <= status_code < 500:
            return ErrorClass.CLIENT
        if 500 <= status_code < 600:
            return ErrorClass.SERVER

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClass.TIMEOUT

    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "429" in msg or "rate limit" in msg or "rate_limit" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("500", "502", "503", "504")):
        return ErrorClass.SERVER
    if "econnrefused" in msg or "connection" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("400", "401", "403", "404")):
        return ErrorClass.CLIENT

    return ErrorClass.UNKNOWN


_RETRYABLE = frozenset({
    ErrorClass.TRANSIENT,
    ErrorClass.SERVER,
    ErrorClass.TIMEOUT,
})


def is_retryable(error: Exception) -> bool:
    """Return True if the error category supports retry."""
    return classify_error(error) in _RETRYABLE
