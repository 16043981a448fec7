"""Tests for the guarded completion call: breakers and request shape."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from circuitbreaker import CircuitBreakerError, CircuitBreakerMonitor
from tenacity import wait_none

from repograde.llm._llm_call import _breaker_registry, guarded_llm_call

_MESSAGES = [{"role": "user", "content": "hi"}]


def _response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=7),
    )


@pytest.fixture(autouse=True)
def _reset_breakers() -> None:
    _breaker_registry.clear()
    for cb in CircuitBreakerMonitor.get_circuits():
        cb.reset()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def _disable_retry_wait() -> Any:
    original_wait = guarded_llm_call.retry.wait  # type: ignore[attr-defined]
    guarded_llm_call.retry.wait = wait_none()  # type: ignore[attr-defined]
    yield
    guarded_llm_call.retry.wait = original_wait  # type: ignore[attr-defined]


class TestGuardedCall:
    async def test_returns_content_and_usage(self) -> None:
        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            return_value=_response('{"ok": true}'),
        ):
            result = await guarded_llm_call("test-model", _MESSAGES, 10)
        assert result.content == '{"ok": true}'
        assert result.model == "test-model"
        assert result.input_tokens == 12
        assert result.output_tokens == 7

    async def test_request_kwargs(self) -> None:
        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            return_value=_response("{}"),
        ) as mock_call:
            await guarded_llm_call(
                "test-model", _MESSAGES, 10, temperature=0.2
            )
        kwargs = mock_call.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 4096
        assert kwargs["timeout"] == 10

    async def test_api_key_forwarded(self) -> None:
        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            return_value=_response("{}"),
        ) as mock_call:
            await guarded_llm_call(
                "test-model", _MESSAGES, 10, api_key="sk-test"
            )
        assert mock_call.call_args.kwargs["api_key"] == "sk-test"

    async def test_plain_text_mode(self) -> None:
        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            return_value=_response(None),
        ) as mock_call:
            result = await guarded_llm_call(
                "test-model", _MESSAGES, 10, json_mode=False
            )
        assert "response_format" not in mock_call.call_args.kwargs
        assert "temperature" not in mock_call.call_args.kwargs
        assert "api_key" not in mock_call.call_args.kwargs
        assert result.content == ""


class TestCircuitBreaker:
    async def test_circuit_opens_after_threshold(self) -> None:
        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            side_effect=ConnectionError("API down"),
        ):
            for _ in range(5):
                with pytest.raises(ConnectionError):
                    await guarded_llm_call("test-model", _MESSAGES, 10)

            with pytest.raises(CircuitBreakerError):
                await guarded_llm_call("test-model", _MESSAGES, 10)

    async def test_breakers_are_per_model(self) -> None:
        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            side_effect=ConnectionError("API down"),
        ):
            for _ in range(5):
                with pytest.raises(ConnectionError):
                    await guarded_llm_call("model-a", _MESSAGES, 10)

        with patch(
            "repograde.llm._llm_call._acompletion",
            new_callable=AsyncMock,
            return_value=_response("{}"),
        ):
            with pytest.raises(CircuitBreakerError):
                await guarded_llm_call("model-a", _MESSAGES, 10)
            result = await guarded_llm_call("model-b", _MESSAGES, 10)
        assert result.model == "model-b"
