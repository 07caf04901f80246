"""
Data models for the Backlog Processor.

Immutable records produced by the pipeline stages, plus the mutable
per-invocation run record.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

REFINED_EPIC_LABEL = "Refined Epic: "


class RunStatus(str, Enum):
    """Status of a pipeline invocation."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WorkflowStep:
    """Immutable group of user stories forming one unit of planned work."""
    step_id: int
    name: str
    stories: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "name": self.name,
            "stories": list(self.stories),
        }


@dataclass(frozen=True)
class BacklogItem:
    """Immutable task record derived from a workflow step."""
    item_id: int
    step_id: int
    title: str
    description: str
    repo: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "step_id": self.step_id,
            "title": self.title,
            "description": self.description,
            "repo": self.repo,
        }


@dataclass
class PipelineRun:
    """
    Mutable state for tracking a single pipeline invocation.

    Holds every intermediate stage output so callers can inspect the run.
    Never shared between invocations.
    """
    id: str
    epic: str
    repo: str | None = None

    # State
    status: RunStatus = RunStatus.NOT_STARTED
    error: str | None = None

    # Timing
    started_at: datetime | None = None
    completed_at: datetime | None = None

    # Stage outputs
    refined: str | None = None
    sentences: list[str] = field(default_factory=list)
    stories: list[str] = field(default_factory=list)
    workflow: list[WorkflowStep] = field(default_factory=list)
    backlog: list[BacklogItem] = field(default_factory=list)

    @classmethod
    def create(cls, epic: str, repo: str | None = None) -> "PipelineRun":
        """Factory method to create a new run."""
        return cls(id=f"run-{uuid4().hex[:12]}", epic=epic, repo=repo)

    def set_status(self, status: RunStatus, error: str | None = None) -> None:
        """Update status and stamp lifecycle timestamps."""
        self.status = status
        self.error = error

        if status == RunStatus.RUNNING and self.started_at is None:
            self.started_at = datetime.now()

        if self.is_terminal():
            self.completed_at = datetime.now()

    def is_terminal(self) -> bool:
        """Check if run is in a terminal state."""
        return self.status in {RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED}

    def get_duration_ms(self) -> int:
        """Get run duration in milliseconds."""
        if self.started_at is None:
            return 0
        end = self.completed_at or datetime.now()
        return int((end - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "epic": self.epic,
            "repo": self.repo,
            "status": self.status.value,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.get_duration_ms(),
            "refined": self.refined,
            "sentences": list(self.sentences),
            "stories": list(self.stories),
            "workflow": [step.to_dict() for step in self.workflow],
            "backlog": [item.to_dict() for item in self.backlog],
        }
