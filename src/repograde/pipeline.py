"""Typed stage runner with per-stage timeout and bounded fan-out."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from repograde.constants import StageOutcome

logger = logging.getLogger(__name__)


@dataclass
class StageResult[TOutput]:
    """Outcome of running one stage."""

    stage_name: str
    output: TOutput | None
    duration_ms: float
    status: StageOutcome
    error: str | None = None


@dataclass
class PipelineStage[TInput, TOutput]:
    """A named async stage; failures and timeouts become results."""

    name: str
    execute: Callable[[TInput], Awaitable[TOutput]]
    timeout: float | None = None  # seconds; None = unbounded

    async def run(self, input_data: TInput) -> StageResult[TOutput]:
        start = time.monotonic()
        try:
            if self.timeout is not None:
                output = await asyncio.wait_for(
                    self.execute(input_data), timeout=self.timeout
                )
            else:
                output = await self.execute(input_data)
        except TimeoutError:
            elapsed = (time.monotonic() - start) * 1000
            logger.warning(
                "event=stage_timeout stage=%s timeout_s=%.1f",
                self.name,
                self.timeout,
            )
            return StageResult(
                stage_name=self.name,
                output=None,
                duration_ms=elapsed,
                status=StageOutcome.FAILED,
                error=f"Stage timed out after {self.timeout:.0f}s",
            )
        except Exception as exc:
            elapsed = (time.monotonic() - start) * 1000
            logger.warning(
                "event=stage_failed stage=%s error_type=%s error=%s",
                self.name,
                type(exc).__name__,
                exc,
            )
            return StageResult(
                stage_name=self.name,
                output=None,
                duration_ms=elapsed,
                status=StageOutcome.FAILED,
                error=str(exc) or type(exc).__name__,
            )
        return StageResult(
            stage_name=self.name,
            output=output,
            duration_ms=(time.monotonic() - start) * 1000,
            status=StageOutcome.COMPLETED,
        )


@dataclass
class ParallelGroup[TInput]:
    """Run stages concurrently over one shared, read-only input."""

    name: str
    stages: list[PipelineStage[TInput, Any]] = field(
        default_factory=lambda: list[PipelineStage[Any, Any]]()
    )
    max_concurrency: int | None = None

    async def execute(self, input_data: TInput) -> list[StageResult[Any]]:
        """Return one result per stage, in stage order.

        A failing stage never cancels its siblings.
        """
        if not self.stages:
            return []

        semaphore = (
            asyncio.Semaphore(self.max_concurrency)
            if self.max_concurrency
            else None
        )

        async def _run(stage: PipelineStage[TInput, Any]) -> StageResult[Any]:
            if semaphore is None:
                return await stage.run(input_data)
            async with semaphore:
                return await stage.run(input_data)

        results = await asyncio.gather(*(_run(s) for s in self.stages))
        logger.info(
            "event=parallel_group_done group=%s completed=%d failed=%d",
            self.name,
            sum(1 for r in results if r.status == StageOutcome.COMPLETED),
            sum(1 for r in results if r.status == StageOutcome.FAILED),
        )
        return list(results)
