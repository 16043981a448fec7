"""Grounding validator: check claimed file references against real paths."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from repograde.constants import (
    HIGH_CONFIDENCE_RATIO,
    LOW_CONFIDENCE_RATIO,
    MEDIUM_CONFIDENCE_RATIO,
    ConfidenceTier,
)
from repograde.grounding.paths import normalize_path
from repograde.grounding.schemas import GroundingResult

logger = logging.getLogger(__name__)


def confidence_for(valid_count: int, invalid_count: int) -> ConfidenceTier:
    """Map reference counts to a confidence tier.

    Non-decreasing in ``valid_count`` for a fixed total.
    """
    total = valid_count + invalid_count
    if total == 0:
        return ConfidenceTier.INSUFFICIENT
    ratio = valid_count / total
    if ratio >= HIGH_CONFIDENCE_RATIO and invalid_count == 0:
        return ConfidenceTier.HIGH
    if ratio >= MEDIUM_CONFIDENCE_RATIO:
        return ConfidenceTier.MEDIUM
    if ratio >= LOW_CONFIDENCE_RATIO:
        return ConfidenceTier.LOW
    return ConfidenceTier.INSUFFICIENT


def _normalized_truth(ground_truth_paths: Iterable[object]) -> list[str]:
    normalized: list[str] = []
    for path in ground_truth_paths:
        if not isinstance(path, str):
            logger.warning(
                "event=non_string_ground_truth type=%s",
                type(path).__name__,
            )
            continue
        normalized.append(normalize_path(path))
    return list(dict.fromkeys(normalized))


def _partial_match(ref: str, ordered_truth: list[str]) -> str | None:
    suffix = "/" + ref
    for path in ordered_truth:
        if path == ref or path.endswith(suffix):
            return path
    return None


def validate_references(
    references: Iterable[object],
    ground_truth_paths: Iterable[object],
) -> GroundingResult:
    """Classify each reference as valid or invalid against ground truth.

    A reference is valid when its normalized form equals a normalized
    repository path, or when some repository path ends with
    ``"/" + reference`` (a partial match, reported as a warning).
    References are processed in input order and never deduplicated.
    Non-string entries are skipped with a logged warning.
    """
    ordered_truth = _normalized_truth(ground_truth_paths)
    truth = set(ordered_truth)

    valid: list[str] = []
    invalid: list[str] = []
    warnings: list[str] = []

    for ref in references:
        if not isinstance(ref, str):
            logger.warning(
                "event=non_string_reference type=%s",
                type(ref).__name__,
            )
            continue
        normalized = normalize_path(ref)
        if normalized and normalized in truth:
            valid.append(ref)
            continue
        match = (
            _partial_match(normalized, ordered_truth) if normalized else None
        )
        if match is not None:
            valid.append(ref)
            warnings.append(f'Partial match: "{ref}" matched to "{match}"')
        else:
            invalid.append(ref)

    return GroundingResult(
        is_valid=not invalid,
        valid_references=valid,
        invalid_references=invalid,
        warnings=warnings,
        confidence=confidence_for(len(valid), len(invalid)),
    )


def format_grounding_report(result: GroundingResult) -> str:
    """Render a human-readable summary of a grounding result."""
    lines = [
        "=== Grounding Validation Report ===",
        f"Status: {'VALID' if result.is_valid else 'INVALID'}",
        f"Confidence: {result.confidence.upper()}",
        f"Valid references: {len(result.valid_references)}",
        f"Invalid references: {len(result.invalid_references)}",
    ]
    if result.valid_references:
        lines.append("")
        lines.append("Valid:")
        lines.extend(f"  - {ref}" for ref in result.valid_references)
    if result.invalid_references:
        lines.append("")
        lines.append("Invalid:")
        lines.extend(f"  - {ref}" for ref in result.invalid_references)
    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {w}" for w in result.warnings)
    return "\n".join(lines)
