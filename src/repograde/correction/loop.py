"""Retry-with-feedback loop around an async generator and validator.

Each attempt generates an artifact, validates it, and records the
outcome. An attempt is accepted when the validator marks it valid and
its score meets ``min_acceptable_score``. Otherwise the validator's
issues are turned into natural-language feedback for the next attempt.
Both terminal paths return the best attempt's result: the accepted
attempt on convergence, the highest-scoring (earliest on ties) attempt
on exhaustion.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from repograde.constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_ACCEPTABLE_SCORE,
    ERROR_TRUNCATION_CHARS,
)
from repograde.resilience.errors import (
    CorrectionCancelled,
    ErrorClass,
    GenerationError,
    RepogradeError,
    classify_error,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Verdict on one generated artifact."""

    is_valid: bool
    score: float  # 0–100
    feedback: str = ""
    issues: tuple[str, ...] = ()


type Generator[T] = Callable[[str | None], Awaitable[T]]
type Validator[T] = Callable[[T], Awaitable[ValidationResult]]


@dataclass(frozen=True)
class CorrectionAttempt[T]:
    """One generate-then-validate round. ``result`` is None if generation raised."""

    attempt_number: int
    result: T | None
    validation_score: float
    validation_feedback: str
    is_valid: bool = False
    issues: tuple[str, ...] = ()
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class CorrectionResult[T]:
    """Outcome of one ``correct_with_retry`` call."""

    final_result: T
    attempts: tuple[CorrectionAttempt[T], ...]
    total_attempts: int
    converged: bool
    best_score: float

    @property
    def scores(self) -> list[float]:
        return [a.validation_score for a in self.attempts]

    @property
    def feedback_history(self) -> list[str]:
        return [
            a.validation_feedback
            for a in self.attempts
            if a.validation_feedback
        ]


def synthesize_feedback(
    attempt_number: int,
    issues: Sequence[str],
    feedback: str,
) -> str:
    """Turn a failed validation into instructions for the next attempt."""
    lines = [f"Previous attempt ({attempt_number}) had issues:"]
    if issues:
        lines.append("\nSpecific issues:")
        lines.extend(
            f"{idx}. {issue}" for idx, issue in enumerate(issues, 1)
        )
    if feedback:
        lines.append(f"\nValidation feedback: {feedback}")
    lines.append("\nPlease address these issues in your next response.")
    return "\n".join(lines)


class SelfCorrectionLoop:
    """Bounded retry loop; holds no state between calls."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_acceptable_score: float = DEFAULT_MIN_ACCEPTABLE_SCORE,
    ) -> None:
        if max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {max_attempts}"
            raise ValueError(msg)
        self.max_attempts = max_attempts
        self.min_acceptable_score = min_acceptable_score

    def is_acceptable(self, validation: ValidationResult) -> bool:
        return (
            validation.is_valid
            and validation.score >= self.min_acceptable_score
        )

    async def correct_with_retry[T](
        self,
        generator: Generator[T],
        validator: Validator[T],
        *,
        cancel: asyncio.Event | None = None,
        label: str = "artifact",
    ) -> CorrectionResult[T]:
        """Generate until the validator accepts or attempts run out.

        ``generator`` receives None on the first attempt and the
        synthesized feedback afterwards. A generator exception consumes
        its attempt as an invalid, zero-score round whose message
        becomes the next feedback; client errors (bad request, auth)
        propagate at once. Raises GenerationError if no attempt
        produced an artifact and CorrectionCancelled if ``cancel`` is
        set before an attempt starts.
        """
        attempts: list[CorrectionAttempt[T]] = []
        best: CorrectionAttempt[T] | None = None
        feedback: str | None = None
        last_error: Exception | None = None

        for number in range(1, self.max_attempts + 1):
            if cancel is not None and cancel.is_set():
                logger.info(
                    "event=correction_cancelled label=%s completed=%d",
                    label,
                    number - 1,
                )
                raise CorrectionCancelled(number - 1)

            try:
                result = await generator(feedback)
            except Exception as exc:
                if (
                    not isinstance(exc, RepogradeError)
                    and classify_error(exc) == ErrorClass.CLIENT
                ):
                    raise
                last_error = exc
                message = str(exc)[:ERROR_TRUNCATION_CHARS]
                attempt: CorrectionAttempt[T] = CorrectionAttempt(
                    attempt_number=number,
                    result=None,
                    validation_score=0.0,
                    validation_feedback=f"Generation failed: {message}",
                    issues=(f"Generation failed: {message}",),
                    error=message,
                )
                attempts.append(attempt)
                logger.warning(
                    "event=correction_generation_failed label=%s"
                    " attempt=%d error=%s",
                    label,
                    number,
                    message,
                )
                if number < self.max_attempts:
                    feedback = synthesize_feedback(
                        number, attempt.issues, ""
                    )
                continue

            validation = await validator(result)
            attempt = CorrectionAttempt(
                attempt_number=number,
                result=result,
                validation_score=validation.score,
                validation_feedback=validation.feedback,
                is_valid=validation.is_valid,
                issues=tuple(validation.issues),
            )
            attempts.append(attempt)
            accepted = self.is_acceptable(validation)

            if (
                best is None
                or accepted
                or attempt.validation_score > best.validation_score
            ):
                best = attempt

            if accepted:
                logger.info(
                    "event=correction_converged label=%s attempt=%d"
                    " score=%.1f",
                    label,
                    number,
                    validation.score,
                )
                return CorrectionResult(
                    final_result=best.result,  # type: ignore[arg-type]
                    attempts=tuple(attempts),
                    total_attempts=number,
                    converged=True,
                    best_score=best.validation_score,
                )

            logger.info(
                "event=correction_retry label=%s attempt=%d score=%.1f"
                " issues=%d",
                label,
                number,
                validation.score,
                len(validation.issues),
            )
            if number < self.max_attempts:
                feedback = synthesize_feedback(
                    number, validation.issues, validation.feedback
                )

        if best is None:
            msg = (
                f"All {self.max_attempts} generation attempts for"
                f" {label} failed"
            )
            raise GenerationError(msg) from last_error

        logger.warning(
            "event=correction_exhausted label=%s attempts=%d"
            " best_score=%.1f best_attempt=%d",
            label,
            self.max_attempts,
            best.validation_score,
            best.attempt_number,
        )
        return CorrectionResult(
            final_result=best.result,  # type: ignore[arg-type]
            attempts=tuple(attempts),
            total_attempts=self.max_attempts,
            converged=False,
            best_score=best.validation_score,
        )
