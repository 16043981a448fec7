"""Validator builders for the self-correction loop."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Callable, Sequence

from repograde.constants import (
    BASIC_VALIDATOR_ISSUE_PENALTY,
    GROUNDING_TIER_SCORES,
    ConfidenceTier,
)
from repograde.correction.loop import ValidationResult, Validator


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def grounding_score(tier: ConfidenceTier) -> int:
    """Sub-score a stage validator awards for a grounding confidence tier."""
    return GROUNDING_TIER_SCORES[tier]


def basic_validator[T](
    check: Callable[[T], tuple[bool, Sequence[str]]],
) -> Validator[T]:
    """Wrap a synchronous ``(is_valid, issues)`` check as a loop validator.

    Valid results score 100; otherwise each issue costs 20 points,
    floored at zero.
    """

    async def _validate(result: T) -> ValidationResult:
        is_valid, issues = check(result)
        issues = tuple(issues)
        if is_valid:
            return ValidationResult(
                is_valid=True,
                score=100,
                feedback="All checks passed",
                issues=issues,
            )
        return ValidationResult(
            is_valid=False,
            score=max(0, 100 - BASIC_VALIDATOR_ISSUE_PENALTY * len(issues)),
            feedback=f"Failed {len(issues)} checks",
            issues=issues,
        )

    return _validate


def composite_validator[T](
    validators: Sequence[tuple[str, Validator[T], float]],
) -> Validator[T]:
    """Combine named, weighted validators into one.

    Sub-validators run concurrently. The score is the weighted mean,
    rounded; the result is valid only if every sub-validator is valid.
    Every sub-validator that reports issues contributes one
    ``[name] ...`` issue, whether or not it passed.
    """
    total_weight = sum(weight for _, _, weight in validators)
    if not validators or total_weight <= 0:
        msg = "composite_validator needs at least one positive weight"
        raise ValueError(msg)

    async def _validate(result: T) -> ValidationResult:
        outcomes = await asyncio.gather(
            *(validate(result) for _, validate, _ in validators)
        )
        weighted = 0.0
        issues: list[str] = []
        all_valid = True
        for (name, _, weight), outcome in zip(
            validators, outcomes, strict=True
        ):
            weighted += outcome.score * weight
            if not outcome.is_valid:
                all_valid = False
            if outcome.issues:
                issues.append(f"[{name}] {', '.join(outcome.issues)}")

        feedback = (
            "All validation checks passed"
            if all_valid
            else f"Some checks failed: {'; '.join(issues)}"
        )
        return ValidationResult(
            is_valid=all_valid,
            score=_round_half_up(weighted / total_weight),
            feedback=feedback,
            issues=tuple(issues),
        )

    return _validate
