"""
Backlog Processor - main orchestrator using stageflow pipelines.

Chains the refine, split, format, workflow and backlog stages and provides
the main entry points for running them.
"""

import asyncio
from typing import Any
from uuid import uuid4

from stageflow import Pipeline, StageKind, TimeoutInterceptor
from stageflow.pipeline.dag import UnifiedPipelineCancelled, UnifiedStageExecutionError
from stageflow.stages.context import PipelineContext

from .config import PipelineConfig
from .models import BacklogItem, PipelineRun, RunStatus
from .utils.logger import get_logger

from .stages import (
    RefineEpicStage,
    SplitSentencesStage,
    FormatStoriesStage,
    CreateWorkflowStage,
    CreateBacklogStage,
)
from .interceptors import (
    FailFastInterceptor,
    ObservabilityInterceptor,
    StageOutputInterceptor,
)

logger = get_logger("processor")

TOPOLOGY = "backlog_processor"


class EpicProcessor:
    """
    Main orchestrator turning an epic into user stories and backlog items.

    Features:
    - Linear stageflow pipeline: each stage depends only on the previous one
    - Fail-fast input validation
    - Stage output logging for observability
    - Cooperative cancellation of in-flight runs
    """

    def __init__(self, config: PipelineConfig | None = None):
        self.config = config or PipelineConfig()

        # Initialize stages
        self._init_stages()

        # Initialize interceptors
        self._init_interceptors()

        # Build pipelines
        self._story_pipeline = self._build_story_pipeline()
        self._backlog_pipeline = self._build_backlog_pipeline()

        # Contexts of runs currently executing, keyed by run id
        self._active: dict[str, PipelineContext] = {}

    def _init_stages(self) -> None:
        """Initialize pipeline stages."""
        self.refine_stage = RefineEpicStage()
        self.split_stage = SplitSentencesStage()
        self.format_stage = FormatStoriesStage()
        self.workflow_stage = CreateWorkflowStage(stories_per_step=self.config.stories_per_step)
        self.backlog_stage = CreateBacklogStage()

    def _init_interceptors(self) -> None:
        """Initialize pipeline interceptors."""
        self.fail_fast_interceptor = FailFastInterceptor()
        self.observability_interceptor = ObservabilityInterceptor(verbose=self.config.verbose)
        self.stage_output_interceptor = StageOutputInterceptor()

        self.interceptors = [
            self.fail_fast_interceptor,
            TimeoutInterceptor(),
            self.observability_interceptor,
            self.stage_output_interceptor,
        ]

    def _build_story_pipeline(self) -> Pipeline:
        """Build the refine -> split -> format pipeline."""
        return (
            Pipeline(name="story_pipeline")
            .with_stage("refine_epic", self.refine_stage, StageKind.TRANSFORM)
            .with_stage(
                "split_sentences",
                self.split_stage,
                StageKind.TRANSFORM,
                dependencies=("refine_epic",),
            )
            .with_stage(
                "format_stories",
                self.format_stage,
                StageKind.TRANSFORM,
                dependencies=("split_sentences",),
            )
        )

    def _build_backlog_pipeline(self) -> Pipeline:
        """Extend the story pipeline with the workflow and backlog stages."""
        return (
            Pipeline(name="backlog_pipeline", stages=dict(self._story_pipeline.stages))
            .with_stage(
                "create_workflow",
                self.workflow_stage,
                StageKind.TRANSFORM,
                dependencies=("format_stories",),
            )
            .with_stage(
                "create_backlog",
                self.backlog_stage,
                StageKind.WORK,
                dependencies=("create_workflow",),
            )
        )

    def _create_context(self, run: PipelineRun) -> PipelineContext:
        """Create a fresh, isolated context for one run."""
        metadata: dict[str, Any] = {"run_id": run.id}
        if run.repo is not None:
            metadata["repo"] = run.repo

        return PipelineContext.create(
            pipeline_run_id=uuid4(),
            request_id=uuid4(),
            topology=TOPOLOGY,
            execution_mode="default",
            input_text=run.epic,
            metadata=metadata,
            data={"_timeout_ms": self.config.stage_timeout_ms},
        )

    async def _execute(self, pipeline: Pipeline, run: PipelineRun) -> PipelineRun:
        """Run a pipeline for one run record, filling in its outputs."""
        ctx = self._create_context(run)
        self._active[run.id] = ctx
        run.set_status(RunStatus.RUNNING)
        logger.info(f"Starting {run.id}", extra={"pipeline": pipeline.name})

        try:
            results = await pipeline.run(ctx, interceptors=self.interceptors)
        except UnifiedPipelineCancelled as e:
            run.set_status(RunStatus.CANCELLED, e.reason)
            logger.warning(f"Cancelled {run.id}: {e.reason}")
            raise
        except UnifiedStageExecutionError as e:
            run.set_status(RunStatus.FAILED, str(e.original))
            logger.error(f"Failed {run.id} at {e.stage}: {e.original}",
                         extra={"error_type": type(e.original).__name__})
            raise e.original from e
        except asyncio.CancelledError:
            run.set_status(RunStatus.CANCELLED, "Task cancelled")
            raise
        except Exception as e:
            run.set_status(RunStatus.FAILED, str(e))
            logger.error(f"Failed {run.id}: {e}", extra={"error_type": type(e).__name__})
            raise
        finally:
            self._active.pop(run.id, None)

        run.refined = results.data("refine_epic")["refined"]
        run.sentences = results.data("split_sentences")["sentences"]
        run.stories = results.data("format_stories")["stories"]
        if results.output("create_workflow") is not None:
            run.workflow = results.data("create_workflow")["workflow"]
        if results.output("create_backlog") is not None:
            run.backlog = results.data("create_backlog")["backlog"]

        run.set_status(RunStatus.COMPLETED)
        logger.info(f"Completed {run.id}", extra={"duration_ms": run.get_duration_ms()})
        return run

    async def generate_stories_detailed(self, epic: str) -> PipelineRun:
        """Run the story pipeline and return the full run record."""
        return await self._execute(self._story_pipeline, PipelineRun.create(epic))

    async def generate_stories(self, epic: str) -> list[str]:
        """Turn an epic into user stories (refine, split, format)."""
        run = await self.generate_stories_detailed(epic)
        return run.stories

    async def run_detailed(self, epic: str, repo: str) -> PipelineRun:
        """Run the full pipeline and return the full run record."""
        return await self._execute(self._backlog_pipeline, PipelineRun.create(epic, repo))

    async def run(self, epic: str, repo: str) -> list[BacklogItem]:
        """Turn an epic into backlog items for ``repo``."""
        run = await self.run_detailed(epic, repo)
        return run.backlog

    def active_runs(self) -> list[str]:
        """Ids of runs currently executing."""
        return list(self._active)

    def cancel_all(self, reason: str = "Cancelled by user") -> None:
        """Cancel every in-flight run at its next stage boundary."""
        for run_id, ctx in list(self._active.items()):
            logger.warning(f"Cancelling {run_id}: {reason}")
            ctx.mark_canceled(reason)


async def run_story_pipeline(epic: str, config: PipelineConfig | None = None) -> list[str]:
    """Generate user stories for an epic with a one-off processor."""
    return await EpicProcessor(config).generate_stories(epic)


async def run_full_pipeline(epic: str, repo: str, config: PipelineConfig | None = None) -> list[BacklogItem]:
    """Generate backlog items for an epic and repository with a one-off processor."""
    return await EpicProcessor(config).run(epic, repo)
