"""Tests for LLMClient model-chain fallback and JSON parsing."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from circuitbreaker import CircuitBreakerMonitor

from repograde.config import Settings
from repograde.llm import LLMCallResult, LLMClient
from repograde.llm._llm_call import _breaker_registry
from repograde.llm.client import parse_json_array, parse_json_object
from repograde.resilience.errors import GenerationError


class _AuthError(Exception):
    status_code = 401


def _result(content: str, model: str = "test/primary") -> LLMCallResult:
    return LLMCallResult(
        content=content, model=model, input_tokens=1, output_tokens=1
    )


@pytest.fixture(autouse=True)
def _reset_breakers() -> None:
    _breaker_registry.clear()
    for cb in CircuitBreakerMonitor.get_circuits():
        cb.reset()  # type: ignore[union-attr]


class TestModelChain:
    async def test_primary_success(self, settings: Settings) -> None:
        with patch(
            "repograde.llm.client.guarded_llm_call",
            new_callable=AsyncMock,
            return_value=_result("{}"),
        ) as mock_call:
            result = await LLMClient(settings).complete("sys", "user")
        assert result.content == "{}"
        assert mock_call.await_count == 1
        kwargs = mock_call.call_args.kwargs
        assert kwargs["model"] == "test/primary"
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]
        assert kwargs["temperature"] == settings.llm_temperature
        assert kwargs["api_key"] is None

    def test_api_key_by_provider(self) -> None:
        client = LLMClient(
            Settings(
                anthropic_api_key="ak",
                openai_api_key="",
                litellm_model_chain=["anthropic/claude"],
            )
        )
        assert client.api_key_for("anthropic/claude-sonnet") == "ak"
        assert client.api_key_for("openai/gpt-4.1-mini") is None
        assert client.api_key_for("ollama/llama3") is None

    async def test_falls_back_on_server_error(
        self, settings: Settings
    ) -> None:
        with patch(
            "repograde.llm.client.guarded_llm_call",
            new_callable=AsyncMock,
            side_effect=[
                RuntimeError("503 service unavailable"),
                _result("{}", model="test/fallback"),
            ],
        ):
            result = await LLMClient(settings).complete("sys", "user")
        assert result.model == "test/fallback"

    async def test_falls_back_on_empty_content(
        self, settings: Settings
    ) -> None:
        with patch(
            "repograde.llm.client.guarded_llm_call",
            new_callable=AsyncMock,
            side_effect=[
                _result("   "),
                _result('{"a": 1}', model="test/fallback"),
            ],
        ):
            result = await LLMClient(settings).complete("sys", "user")
        assert result.content == '{"a": 1}'

    async def test_client_error_raises_immediately(
        self, settings: Settings
    ) -> None:
        with patch(
            "repograde.llm.client.guarded_llm_call",
            new_callable=AsyncMock,
            side_effect=_AuthError("bad key"),
        ) as mock_call:
            with pytest.raises(_AuthError):
                await LLMClient(settings).complete("sys", "user")
        assert mock_call.await_count == 1

    async def test_all_models_fail(self, settings: Settings) -> None:
        with patch(
            "repograde.llm.client.guarded_llm_call",
            new_callable=AsyncMock,
            side_effect=RuntimeError("connection reset"),
        ):
            with pytest.raises(GenerationError, match="All models"):
                await LLMClient(settings).complete("sys", "user")

    async def test_open_circuit_skips_to_fallback(
        self, settings: Settings
    ) -> None:
        def _by_model(**kwargs: Any) -> SimpleNamespace:
            if kwargs["model"] == "test/primary":
                raise ConnectionError("primary down")
            return SimpleNamespace(
                choices=[
                    SimpleNamespace(message=SimpleNamespace(content="{}"))
                ],
                usage=SimpleNamespace(prompt_tokens=1, completion_tokens=1),
            )

        client = LLMClient(settings)
        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            side_effect=_by_model,
        ) as mock_call:
            for _ in range(6):
                result = await client.complete("sys", "user")
                assert result.model == "test/fallback"
        primary_calls = [
            c
            for c in mock_call.call_args_list
            if c.kwargs["model"] == "test/primary"
        ]
        # the breaker opens after five failures, so the sixth run skips it
        assert len(primary_calls) == 5


class TestParseJson:
    def test_bare_object(self) -> None:
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_object(self) -> None:
        text = '```json\n{"a": [1, 2]}\n```'
        assert parse_json_object(text) == {"a": [1, 2]}

    def test_object_in_prose(self) -> None:
        text = 'Here is the review:\n{"score": 80}\nThanks!'
        assert parse_json_object(text) == {"score": 80}

    def test_object_missing(self) -> None:
        with pytest.raises(GenerationError):
            parse_json_object("no json here")

    def test_array_not_object(self) -> None:
        with pytest.raises(GenerationError):
            parse_json_object("[1, 2]")

    def test_bare_array(self) -> None:
        assert parse_json_array("[1, 2]") == [1, 2]

    def test_array_under_key(self) -> None:
        text = '{"questions": [{"q": 1}]}'
        assert parse_json_array(text, key="questions") == [{"q": 1}]

    def test_array_in_prose(self) -> None:
        assert parse_json_array('Result: [1, 2] done') == [1, 2]

    def test_missing_key(self) -> None:
        with pytest.raises(GenerationError):
            parse_json_array('{"other": []}', key="questions")
