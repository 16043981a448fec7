"""Tests for Settings validators, stage gates and engine creation."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from repograde.config import (
    ARTIFACT_TITLES,
    STAGE_CORRECTION,
    Settings,
    create_app_engine,
)
from repograde.constants import ArtifactKind, StageName


class TestModelChainParsing:
    def test_comma_separated_string_parsed_to_list(self) -> None:
        s = Settings(litellm_model_chain="model-a,model-b")  # type: ignore[arg-type]
        assert s.litellm_model_chain == ["model-a", "model-b"]

    def test_comma_separated_with_spaces(self) -> None:
        s = Settings(litellm_model_chain=" model-a , model-b ")  # type: ignore[arg-type]
        assert s.litellm_model_chain == ["model-a", "model-b"]

    def test_list_passthrough(self) -> None:
        s = Settings(litellm_model_chain=["model-a"])
        assert s.litellm_model_chain == ["model-a"]

    def test_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LITELLM_MODEL_CHAIN", "env/a,env/b")
        assert Settings().litellm_model_chain == ["env/a", "env/b"]


class TestModelChainValidation:
    def test_empty_chain_raises(self) -> None:
        with pytest.raises(ValueError, match="at least one model"):
            Settings(litellm_model_chain=[])

    def test_empty_string_raises(self) -> None:
        with pytest.raises(ValueError, match="at least one model"):
            Settings(litellm_model_chain=" , ")  # type: ignore[arg-type]

    def test_duplicate_models_warns(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="repograde.config"):
            s = Settings(
                litellm_model_chain=["model-a", "model-a", "model-b"]
            )
        assert "Duplicate models in LITELLM_MODEL_CHAIN" in caplog.text
        # Chain is preserved as-is
        assert s.litellm_model_chain == ["model-a", "model-a", "model-b"]


class TestReferenceExtensions:
    def test_string_parsed_and_normalized(self) -> None:
        s = Settings(reference_extensions=" .PY, ts,,rs")  # type: ignore[arg-type]
        assert s.reference_extensions == ["py", "ts", "rs"]

    def test_list_strips_dots(self) -> None:
        s = Settings(reference_extensions=[".go", "Java"])
        assert s.reference_extensions == ["go", "java"]

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError, match="at least one extension"):
            Settings(reference_extensions=".")  # type: ignore[arg-type]


class TestStageGates:
    def test_every_stage_has_a_gate(self) -> None:
        assert set(STAGE_CORRECTION) == set(StageName)

    def test_review_tolerates_missing_code(self) -> None:
        assert STAGE_CORRECTION[StageName.REVIEW].requires_code is False
        assert STAGE_CORRECTION[StageName.INTELLIGENCE].requires_code
        assert STAGE_CORRECTION[StageName.QUESTIONS].requires_code

    def test_questions_gate(self) -> None:
        gate = STAGE_CORRECTION[StageName.QUESTIONS]
        assert gate.min_acceptable_score == 75
        assert gate.min_items == 40

    def test_artifact_titles_cover_kinds(self) -> None:
        assert set(ARTIFACT_TITLES) == set(ArtifactKind)


class TestCreateAppEngine:
    async def test_wal_mode_set_on_connect(self, tmp_path: Path) -> None:
        from sqlalchemy import text

        engine = create_app_engine(f"sqlite:///{tmp_path / 'test.db'}")
        async with engine.connect() as conn:
            row = await conn.execute(text("PRAGMA journal_mode"))
            mode = row.scalar()
        await engine.dispose()
        assert mode == "wal"

    async def test_url_conversion(self) -> None:
        engine = create_app_engine("sqlite:///data/test.db")
        assert "aiosqlite" in str(engine.url)
        await engine.dispose()

    async def test_already_converted_url_passthrough(self) -> None:
        engine = create_app_engine("sqlite+aiosqlite:///:memory:")
        assert str(engine.url) == "sqlite+aiosqlite:///:memory:"
        await engine.dispose()
