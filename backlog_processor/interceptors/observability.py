"""
Observability Interceptor - stage timing logs and per-stage metrics.

Every run shares one interceptor instance, so timings are keyed by
pipeline run id and stage name.
"""

import time
from dataclasses import dataclass
from typing import Any

from stageflow import BaseInterceptor, ErrorAction

from ..utils.logger import get_logger

logger = get_logger("observability")


@dataclass
class StageStats:
    """Counters and accumulated duration for one stage name."""

    started: int = 0
    completed: int = 0
    failed: int = 0
    total_ms: int = 0

    def to_dict(self) -> dict[str, int]:
        finished = self.completed + self.failed
        return {
            "started": self.started,
            "completed": self.completed,
            "failed": self.failed,
            "avg_duration_ms": self.total_ms // finished if finished else 0,
        }


class ObservabilityInterceptor(BaseInterceptor):
    """
    Interceptor logging ▶/✓/✗ lines around every stage.

    Features:
    - Stage timing per run
    - Started/completed/failed counters per stage
    - Structured log context (run id, stage, duration)
    """

    name = "observability"
    priority = 45  # Inner wrapper, closest to the stage

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._started_at: dict[tuple[str, str], float] = {}
        self._stats: dict[str, StageStats] = {}

    @staticmethod
    def _run_id(ctx) -> str:
        return str(getattr(ctx, "pipeline_run_id", None) or "")

    def _stats_for(self, stage_name: str) -> StageStats:
        return self._stats.setdefault(stage_name, StageStats())

    async def before(self, stage_name: str, ctx) -> None:
        """Start the stage timer."""
        run_id = self._run_id(ctx)
        self._started_at[(run_id, stage_name)] = time.perf_counter()
        self._stats_for(stage_name).started += 1

        log_data = {"stage": stage_name, "pipeline_run_id": run_id}
        if self.verbose:
            logger.debug(f"Stage starting: {stage_name}", extra=log_data)
        else:
            logger.info(f"▶ {stage_name}", extra=log_data)

    async def after(self, stage_name: str, result, ctx) -> None:
        """Stop the stage timer and log the outcome."""
        run_id = self._run_id(ctx)
        started = self._started_at.pop((run_id, stage_name), None)
        duration_ms = int((time.perf_counter() - started) * 1000) if started is not None else 0

        stats = self._stats_for(stage_name)
        stats.total_ms += duration_ms
        status = getattr(result, "status", "unknown")

        log_data: dict[str, Any] = {
            "stage": stage_name,
            "status": status,
            "duration_ms": duration_ms,
            "pipeline_run_id": run_id,
        }

        if status == "failed":
            stats.failed += 1
            logger.warning(f"✗ {stage_name} ({duration_ms}ms) - {getattr(result, 'error', None)}", extra=log_data)
            return

        stats.completed += 1
        if self.verbose and getattr(result, "data", None):
            log_data["output_keys"] = sorted(result.data)
        logger.info(f"✓ {stage_name} ({duration_ms}ms)", extra=log_data)

    async def on_error(self, stage_name: str, error: Exception, ctx) -> ErrorAction:
        """Log the stage exception; the failed result is counted in after()."""
        logger.error(
            f"✗ {stage_name} raised {type(error).__name__}: {error}",
            extra={"stage": stage_name, "error_type": type(error).__name__, "pipeline_run_id": self._run_id(ctx)},
        )
        return ErrorAction.FAIL

    def get_metrics(self) -> dict[str, Any]:
        """Snapshot of per-stage counters."""
        return {
            "stage_counts": {name: stats.to_dict() for name, stats in self._stats.items()},
            "active_stages": len(self._started_at),
        }

    def reset_metrics(self) -> None:
        """Reset accumulated metrics."""
        self._stats.clear()
        self._started_at.clear()
