"""Process-wide logging setup, run in two phases around the imports.

Phase 1, setup_logging(), runs before anything imports litellm: it pins
LITELLM_LOG and configures the root logger at LOG_LEVEL.

Phase 2, cleanup_third_party_handlers(), runs once every import is done:
litellm attaches its own StreamHandlers at import time, which would
print each record twice alongside root propagation.

Each phase runs at most once per process.
"""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Chatty third-party loggers held at WARNING
_SUPPRESSED_LOGGERS = (
    "LiteLLM",
    "LiteLLM Router",
    "LiteLLM Proxy",
    "openai._base_client",
    "httpx",
    "aiosqlite",
    "sqlalchemy.engine",
)

_LITELLM_LOGGERS = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy")

_phase1_done = False
_phase2_done = False


def setup_logging(level: str | None = None) -> None:
    """Phase 1: root logger plus LITELLM_LOG.

    ``level`` defaults to the LOG_LEVEL environment variable, then INFO.
    """
    global _phase1_done  # noqa: PLW0603
    if _phase1_done:
        return
    _phase1_done = True

    # Read by litellm._logging when it is first imported.
    os.environ.setdefault("LITELLM_LOG", "WARNING")

    logging.basicConfig(
        level=_resolve_level(level or os.environ.get("LOG_LEVEL", "INFO")),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_root_level(level: str) -> None:
    """Change the root level after setup (``--verbose``)."""
    logging.getLogger().setLevel(_resolve_level(level))


def cleanup_third_party_handlers() -> None:
    """Phase 2: drop litellm's handlers and let records reach root."""
    global _phase2_done  # noqa: PLW0603
    if _phase2_done:
        return
    _phase2_done = True

    for name in _LITELLM_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO
