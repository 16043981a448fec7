"""Pydantic models for grounding validation output."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from repograde.constants import ConfidenceTier


class GroundingResult(BaseModel):
    """Outcome of checking a list of file references against a repository.

    ``valid_references`` and ``invalid_references`` keep duplicates, so
    their lengths always add up to the number of string references
    checked.
    """

    is_valid: bool
    valid_references: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    invalid_references: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    warnings: list[str] = Field(
        default_factory=lambda: list[str]()
    )
    confidence: ConfidenceTier

    @property
    def total_references(self) -> int:
        return len(self.valid_references) + len(self.invalid_references)

    @property
    def valid_ratio(self) -> float:
        total = self.total_references
        return len(self.valid_references) / total if total else 0.0


class BulkGroundingResult(BaseModel):
    """Per-item split plus an aggregate result over all item references."""

    valid_items: list[Any] = Field(default_factory=lambda: list[Any]())
    invalid_items: list[Any] = Field(default_factory=lambda: list[Any]())
    overall_result: GroundingResult
