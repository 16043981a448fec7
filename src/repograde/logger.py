"""Structured JSON logger for stage outcomes and correction attempts."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from repograde.constants import ERROR_TRUNCATION_CHARS

__all__ = ["AnalysisLogger"]


class AnalysisLogger:
    """Structured JSON logger with analysis_id correlation."""

    def __init__(self, log_dir: Path, level: str = "INFO") -> None:
        self._log_dir = log_dir
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger("repograde.analysis")
        self._logger.setLevel(getattr(logging, level.upper()))

        if not self._logger.handlers:
            handler = logging.FileHandler(log_dir / "analysis.log")
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)

    def log_stage(
        self,
        analysis_id: str,
        stage_name: str,
        status: str,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "stage",
                "timestamp": datetime.now(UTC).isoformat(),
                "analysis_id": analysis_id,
                "stage": stage_name,
                "status": status,
                "duration_ms": duration_ms,
                "error": error[:ERROR_TRUNCATION_CHARS] if error else None,
            })
        )

    def log_correction(
        self,
        analysis_id: str,
        stage_name: str,
        total_attempts: int,
        converged: bool,
        scores: list[float],
    ) -> None:
        self._logger.info(
            json.dumps({
                "type": "correction",
                "timestamp": datetime.now(UTC).isoformat(),
                "analysis_id": analysis_id,
                "stage": stage_name,
                "total_attempts": total_attempts,
                "converged": converged,
                "scores": scores,
            })
        )

    def log_error(
        self,
        analysis_id: str,
        component: str,
        error: str,
    ) -> None:
        self._logger.error(
            json.dumps({
                "type": "error",
                "timestamp": datetime.now(UTC).isoformat(),
                "analysis_id": analysis_id,
                "component": component,
                "error": error[:ERROR_TRUNCATION_CHARS],
            })
        )
