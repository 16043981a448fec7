"""LLM collaborator: model-chain fallback plus JSON extraction."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, cast

from circuitbreaker import CircuitBreakerError

from repograde.config import Settings
from repograde.constants import ERROR_TRUNCATION_CHARS
from repograde.llm._llm_call import LLMCallResult, guarded_llm_call
from repograde.resilience.errors import (
    ErrorClass,
    GenerationError,
    classify_error,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n(.*?)```\s*$", re.DOTALL)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


class LLMClient:
    """Completion client built once per run and handed to every stage.

    Tries each model in ``settings.litellm_model_chain`` in order.
    Client errors (bad request, authentication) are raised at once;
    anything else falls through to the next model.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def api_key_for(self, model: str) -> str | None:
        """Key from settings for the model's provider prefix, if set."""
        provider = model.split("/", 1)[0].lower()
        keys = {
            "anthropic": self.settings.anthropic_api_key,
            "openai": self.settings.openai_api_key,
        }
        return keys.get(provider) or None

    async def complete(
        self,
        system: str,
        user: str,
        *,
        json_mode: bool = True,
    ) -> LLMCallResult:
        messages: list[dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        last_error: Exception | None = None

        for model_name in self.settings.litellm_model_chain:
            try:
                result = await guarded_llm_call(
                    model=model_name,
                    messages=messages,
                    timeout=self.settings.llm_timeout_seconds,
                    temperature=self.settings.llm_temperature,
                    json_mode=json_mode,
                    api_key=self.api_key_for(model_name),
                )
            except CircuitBreakerError as exc:
                last_error = exc
                logger.warning(
                    "event=llm_circuit_open model=%s", model_name
                )
                continue
            except Exception as exc:
                if classify_error(exc) == ErrorClass.CLIENT:
                    raise
                last_error = exc
                logger.warning(
                    "event=llm_call_failed model=%s error=%s",
                    model_name,
                    str(exc)[:ERROR_TRUNCATION_CHARS],
                )
                continue

            if not result.content.strip():
                last_error = GenerationError(
                    f"Empty completion from {model_name}"
                )
                logger.warning("event=llm_empty_content model=%s", model_name)
                continue

            logger.debug(
                "event=llm_call_ok model=%s input_tokens=%d output_tokens=%d",
                result.model,
                result.input_tokens,
                result.output_tokens,
            )
            return result

        logger.warning("event=llm_all_models_failed")
        msg = "All models in the chain failed"
        if last_error is not None:
            msg = f"{msg}: {str(last_error)[:ERROR_TRUNCATION_CHARS]}"
        raise GenerationError(msg) from last_error


def _strip_fences(text: str) -> str:
    m = _FENCE_RE.match(text.strip())
    return m.group(1).strip() if m else text.strip()


def _loads(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return None


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse the first JSON object in a completion.

    Accepts bare JSON, fenced JSON, or JSON embedded in prose.
    Raises GenerationError if no object can be decoded.
    """
    cleaned = _strip_fences(text)
    data = _loads(cleaned)
    if not isinstance(data, dict):
        match = _OBJECT_RE.search(cleaned)
        data = _loads(match.group(0)) if match else None
    if not isinstance(data, dict):
        logger.warning(
            "event=json_parse_failed kind=object response_len=%d",
            len(text),
        )
        msg = "Model output did not contain a JSON object"
        raise GenerationError(msg)
    return cast(dict[str, Any], data)


def parse_json_array(text: str, key: str | None = None) -> list[Any]:
    """Parse a JSON array, or the list under ``key`` of a JSON object.

    JSON mode forces providers to wrap arrays in an object, so both
    shapes are accepted. Raises GenerationError otherwise.
    """
    cleaned = _strip_fences(text)
    data = _loads(cleaned)
    if data is None:
        match = _ARRAY_RE.search(cleaned) or _OBJECT_RE.search(cleaned)
        data = _loads(match.group(0)) if match else None
    if isinstance(data, dict) and key is not None:
        data = cast(dict[str, Any], data).get(key)
    if not isinstance(data, list):
        logger.warning(
            "event=json_parse_failed kind=array response_len=%d",
            len(text),
        )
        msg = "Model output did not contain a JSON array"
        raise GenerationError(msg)
    return cast(list[Any], data)
