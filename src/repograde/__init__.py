"""repograde — grounded LLM review of source repositories."""

__version__ = "0.1.0"
