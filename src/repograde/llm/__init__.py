"""LLM access: guarded completions, model-chain client, JSON parsing."""

from repograde.llm._llm_call import LLMCallResult, guarded_llm_call
from repograde.llm.client import LLMClient, parse_json_array, parse_json_object

__all__ = [
    "LLMCallResult",
    "LLMClient",
    "guarded_llm_call",
    "parse_json_array",
    "parse_json_object",
]
