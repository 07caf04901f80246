"""
Stageflow-based Backlog Processor.

Turns a free-text epic into user stories, a workflow and backlog items
through a linear, observable stage pipeline.

Features:
- Refine, split, format, group and expand stages
- Fail-fast input validation
- Stage output logging for observability
- Cooperative cancellation at stage boundaries
"""

__version__ = "0.1.0"

from .processor import EpicProcessor, run_full_pipeline, run_story_pipeline
from .config import PipelineConfig
from .models import BacklogItem, PipelineRun, RunStatus, WorkflowStep

__all__ = [
    "EpicProcessor",
    "run_full_pipeline",
    "run_story_pipeline",
    "PipelineConfig",
    "BacklogItem",
    "PipelineRun",
    "RunStatus",
    "WorkflowStep",
    "__version__",
]
