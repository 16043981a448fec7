"""Tests for interview track selection."""

from __future__ import annotations

from repograde.artifacts import InterviewQuestion
from repograde.constants import Difficulty, QuestionCategory
from repograde.stages.tracks import (
    TRACKS,
    category_counts,
    difficulty_distribution,
    organize_tracks,
    select_for_track,
)


def _bank(spec: list[tuple[QuestionCategory, int]]) -> list[InterviewQuestion]:
    questions: list[InterviewQuestion] = []
    for category, count in spec:
        for _ in range(count):
            idx = len(questions) + 1
            questions.append(
                InterviewQuestion(
                    question_id=f"Q{idx:03d}",
                    question=f"Question {idx}",
                    category=category,
                    difficulty=Difficulty.MID_LEVEL,
                )
            )
    return questions


def test_quick_assessment_quotas() -> None:
    questions = _bank([
        (QuestionCategory.ARCHITECTURE, 5),
        (QuestionCategory.IMPLEMENTATION, 5),
        (QuestionCategory.TRADEOFFS, 5),
    ])
    ids = select_for_track(questions, TRACKS[0])
    assert ids == [
        # implementation quota first, then architecture, then tradeoffs
        "Q006", "Q007", "Q008", "Q009",
        "Q001", "Q002", "Q003",
        "Q011", "Q012", "Q013",
    ]


def test_missing_categories_filled_with_unused() -> None:
    questions = _bank([(QuestionCategory.SECURITY, 12)])
    ids = select_for_track(questions, TRACKS[0])
    assert ids == [f"Q{i:03d}" for i in range(1, 11)]


def test_small_bank_yields_short_track() -> None:
    questions = _bank([(QuestionCategory.ARCHITECTURE, 4)])
    tracks = organize_tracks(questions)
    assert [len(t.question_ids) for t in tracks] == [4, 4, 4]


def test_track_lengths_and_durations() -> None:
    questions = _bank([
        (QuestionCategory.ARCHITECTURE, 15),
        (QuestionCategory.IMPLEMENTATION, 15),
        (QuestionCategory.TRADEOFFS, 10),
        (QuestionCategory.SCALABILITY, 10),
    ])
    tracks = organize_tracks(questions)
    assert [(len(t.question_ids), t.duration_minutes) for t in tracks] == [
        (10, 30),
        (15, 60),
        (25, 90),
    ]
    for track in tracks:
        assert len(set(track.question_ids)) == len(track.question_ids)


def test_counts_are_zero_filled() -> None:
    questions = _bank([(QuestionCategory.DEBUGGING, 2)])
    counts = category_counts(questions)
    assert counts["debugging"] == 2
    assert counts["designPatterns"] == 0
    assert set(counts) == {str(c) for c in QuestionCategory}
    assert difficulty_distribution(questions) == {
        "junior": 0,
        "mid-level": 2,
        "senior": 0,
        "staff": 0,
    }
