"""Organize a question bank into fixed-length interview tracks."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from repograde.artifacts import InterviewQuestion, InterviewTrack
from repograde.constants import Difficulty, QuestionCategory


@dataclass(frozen=True)
class TrackSpec:
    name: str
    description: str
    duration_minutes: int
    total: int
    quotas: tuple[tuple[QuestionCategory, int], ...]


TRACKS: tuple[TrackSpec, ...] = (
    TrackSpec(
        name="Quick Assessment",
        description="First-round technical screening",
        duration_minutes=30,
        total=10,
        quotas=(
            (QuestionCategory.IMPLEMENTATION, 4),
            (QuestionCategory.ARCHITECTURE, 3),
            (QuestionCategory.TRADEOFFS, 3),
        ),
    ),
    TrackSpec(
        name="Standard Technical Interview",
        description="Main technical round covering breadth and depth",
        duration_minutes=60,
        total=15,
        quotas=(
            (QuestionCategory.ARCHITECTURE, 5),
            (QuestionCategory.IMPLEMENTATION, 4),
            (QuestionCategory.TRADEOFFS, 3),
            (QuestionCategory.SCALABILITY, 3),
        ),
    ),
    TrackSpec(
        name="Deep Dive / Bar Raiser",
        description="Comprehensive assessment for senior and staff positions",
        duration_minutes=90,
        total=25,
        quotas=(
            (QuestionCategory.ARCHITECTURE, 7),
            (QuestionCategory.IMPLEMENTATION, 6),
            (QuestionCategory.TRADEOFFS, 5),
            (QuestionCategory.SCALABILITY, 4),
            (QuestionCategory.DESIGN_PATTERNS, 3),
        ),
    ),
)


def select_for_track(
    questions: list[InterviewQuestion], spec: TrackSpec
) -> list[str]:
    """Fill category quotas in bank order, then top up with unused questions."""
    selected: list[str] = []
    used: set[str] = set()

    for category, count in spec.quotas:
        picked = [
            q.question_id
            for q in questions
            if q.category == category and q.question_id not in used
        ][:count]
        selected.extend(picked)
        used.update(picked)

    for q in questions:
        if len(selected) >= spec.total:
            break
        if q.question_id not in used:
            selected.append(q.question_id)
            used.add(q.question_id)

    return selected[: spec.total]


def organize_tracks(
    questions: list[InterviewQuestion],
) -> list[InterviewTrack]:
    return [
        InterviewTrack(
            name=spec.name,
            description=spec.description,
            duration_minutes=spec.duration_minutes,
            question_ids=select_for_track(questions, spec),
        )
        for spec in TRACKS
    ]


def category_counts(questions: list[InterviewQuestion]) -> dict[str, int]:
    """Count per canonical category, zero-filled."""
    counts = Counter(q.category for q in questions)
    return {str(c): counts.get(c, 0) for c in QuestionCategory}


def difficulty_distribution(
    questions: list[InterviewQuestion],
) -> dict[str, int]:
    counts = Counter(q.difficulty for q in questions)
    return {str(d): counts.get(d, 0) for d in Difficulty}
