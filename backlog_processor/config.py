"""
Configuration management for the Backlog Processor.

Implements fail-fast validation: invalid settings raise at construction.
"""

from dataclasses import dataclass

EXAMPLE_EPIC = (
    "Build a mobile app for our bookstore that allows users to browse books "
    "and order them online. We also need to manage inventory and track "
    "customer orders in real time."
)
EXAMPLE_REPO = "username/repo"


@dataclass
class PipelineConfig:
    """
    Main configuration for the Backlog Processor.

    stories_per_step: Number of consecutive user stories grouped into one
                      workflow step (1 means one step per story).
    stage_timeout_ms: Per-stage timeout handed to stageflow's TimeoutInterceptor.
    """
    # Grouping policy
    stories_per_step: int = 1

    # Stage execution
    stage_timeout_ms: int = 30000

    # Direct-execution defaults
    example_epic: str = EXAMPLE_EPIC
    example_repo: str = EXAMPLE_REPO

    # Observability
    verbose: bool = False

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.stories_per_step < 1:
            raise ValueError(f"stories_per_step must be >= 1, got {self.stories_per_step}")

        if self.stage_timeout_ms < 1:
            raise ValueError(f"stage_timeout_ms must be >= 1, got {self.stage_timeout_ms}")
