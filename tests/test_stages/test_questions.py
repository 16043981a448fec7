"""Tests for the interview question stage."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import pytest

from repograde.config import STAGE_CORRECTION, Settings
from repograde.constants import (
    ArtifactKind,
    ConfidenceTier,
    Difficulty,
    QuestionCategory,
    StageName,
)
from repograde.ingestion.context_map import build_context_map
from repograde.ingestion.snapshot import RepositorySnapshot
from repograde.repositories.fakes import FakeArtifactStore
from repograde.resilience.errors import ContextUnavailable
from repograde.stages import StageInput, run_questions_stage
from repograde.stages.questions import (
    coerce_questions,
    normalize_category,
    normalize_difficulty,
    score_questions,
)

PATHS = frozenset({"src/main.py", "src/api/routes.py"})
GATE = STAGE_CORRECTION[StageName.QUESTIONS]


def _raw(
    idx: int, category: str, ref: str = "src/main.py"
) -> dict[str, Any]:
    return {
        "question_id": f"Q{idx:03d}",
        "question": f"How does step {idx} work?",
        "category": category,
        "difficulty": "Senior",
        "context": {"file_references": [ref]},
        "expected_answer": {"key_points": ["routing", "validation"]},
    }


def _bank_payload(ref: str = "src/main.py") -> dict[str, Any]:
    categories = (
        ["architecture"] * 15
        + ["Implementation"] * 15
        + ["Trade-Offs"] * 10
        + ["scalability"] * 10
    )
    return {
        "questions": [
            _raw(i, c, ref) for i, c in enumerate(categories, 1)
        ]
    }


def _input(
    snapshot: RepositorySnapshot,
    llm: Any,
    store: FakeArtifactStore,
    settings: Settings,
) -> StageInput:
    return StageInput(
        analysis_id="a1",
        snapshot=snapshot,
        context_map=build_context_map(snapshot),
        llm=llm,
        store=store,
        settings=settings,
    )


class TestNormalization:
    @pytest.mark.parametrize(
        "value", ["trade-offs", "Trade Offs", "tradeoffs", "TRADE_OFFS"]
    )
    def test_tradeoff_variants(self, value: str) -> None:
        assert normalize_category(value) == QuestionCategory.TRADEOFFS

    def test_design_patterns(self) -> None:
        assert (
            normalize_category("Design Patterns")
            == QuestionCategory.DESIGN_PATTERNS
        )

    def test_unknown_category_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            assert normalize_category("astrology") is None
        assert "event=unknown_question_category" in caplog.text

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Mid-Level", Difficulty.MID_LEVEL),
            ("mid level", Difficulty.MID_LEVEL),
            ("JUNIOR", Difficulty.JUNIOR),
            ("Principal", Difficulty.STAFF),
        ],
    )
    def test_difficulty_variants(
        self, value: str, expected: Difficulty
    ) -> None:
        assert normalize_difficulty(value) == expected

    def test_unknown_difficulty(self) -> None:
        assert normalize_difficulty("wizard") is None


class TestCoerce:
    def test_drops_unknown_and_non_objects(self) -> None:
        questions = coerce_questions([
            _raw(1, "architecture"),
            _raw(2, "astrology"),
            "not an object",
            {"category": "security", "difficulty": "staff"},
        ])
        assert [q.question_id for q in questions] == ["Q001"]

    def test_assigns_missing_and_duplicate_ids(self) -> None:
        first = _raw(1, "architecture")
        dup = _raw(1, "security")
        missing = _raw(3, "debugging")
        missing["question_id"] = ""
        questions = coerce_questions([first, dup, missing])
        assert [q.question_id for q in questions] == ["Q001", "Q002", "Q003"]
        assert questions[1].category == QuestionCategory.SECURITY

        taken = _raw(2, "architecture")
        no_id = _raw(9, "security")
        no_id["question_id"] = ""
        clash = _raw(3, "debugging")
        questions = coerce_questions([taken, no_id, clash])
        assert [q.question_id for q in questions] == ["Q002", "Q003", "Q004"]


class TestScoreQuestions:
    def test_full_bank_scores_100(self) -> None:
        questions = coerce_questions(_bank_payload()["questions"])
        result = score_questions(questions, PATHS, GATE)
        assert result.score == 100
        assert result.is_valid is True
        assert result.issues == ()

    def test_small_ungrounded_bank(self) -> None:
        questions = coerce_questions(
            [_raw(i, "security", "ghost.py") for i in range(1, 11)]
        )
        result = score_questions(questions, PATHS, GATE)
        # grounding 30*0.4 + count 20*0.3 + validity 0*0.3
        assert result.score == 18
        assert result.is_valid is False
        assert result.issues == (
            "Poor grounding: 10 questions reference non-existent files",
            "Invalid file references: ghost.py",
            "Too few questions: 10 (expected 45-60)",
            "Too few architecture questions: 0 (expected at least 10)",
            "Too few implementation questions: 0 (expected at least 10)",
        )


class TestRunQuestionsStage:
    async def test_builds_bank(
        self,
        sample_snapshot: RepositorySnapshot,
        llm_factory: Callable[..., Any],
        store: FakeArtifactStore,
        settings: Settings,
    ) -> None:
        llm = llm_factory(_bank_payload())
        out = await run_questions_stage(
            _input(sample_snapshot, llm, store, settings)
        )
        bank = out.artifact
        assert len(bank.questions) == 50
        assert bank.category_counts["tradeoffs"] == 10
        assert bank.category_counts["security"] == 0
        assert bank.difficulty_distribution["senior"] == 50
        assert bank.grounding_confidence == ConfidenceTier.HIGH
        assert [t.name for t in bank.tracks] == [
            "Quick Assessment",
            "Standard Technical Interview",
            "Deep Dive / Bar Raiser",
        ]
        assert bank.self_correction is not None
        assert bank.self_correction.converged is True
        assert bank.self_correction.iterations == 1

        saved = await store.get("a1", ArtifactKind.QUESTION_BANK)
        assert saved is not None
        assert len(saved["questions"]) == 50

    async def test_bad_output_consumes_attempt(
        self,
        sample_snapshot: RepositorySnapshot,
        llm_factory: Callable[..., Any],
        store: FakeArtifactStore,
        settings: Settings,
    ) -> None:
        llm = llm_factory({"questions": []}, _bank_payload())
        out = await run_questions_stage(
            _input(sample_snapshot, llm, store, settings)
        )
        report = out.artifact.self_correction
        assert report is not None
        assert report.iterations == 2
        assert report.initial_score == 0
        assert report.final_score == 100

    async def test_empty_snapshot_raises(
        self,
        snapshot_factory: Callable[..., RepositorySnapshot],
        llm_factory: Callable[..., Any],
        store: FakeArtifactStore,
        settings: Settings,
    ) -> None:
        with pytest.raises(ContextUnavailable):
            await run_questions_stage(
                _input(
                    snapshot_factory({"notes.txt": "hi"}),
                    llm_factory(_bank_payload()),
                    store,
                    settings,
                )
            )
