"""Pipeline stages for the Backlog Processor."""

from .refine_epic import RefineEpicStage, normalize
from .split_sentences import SplitSentencesStage, split
from .format_stories import FormatStoriesStage, format_stories, format_story
from .create_workflow import CreateWorkflowStage, create_workflow
from .create_backlog import CreateBacklogStage, create_backlog

__all__ = [
    "RefineEpicStage",
    "SplitSentencesStage",
    "FormatStoriesStage",
    "CreateWorkflowStage",
    "CreateBacklogStage",
    "normalize",
    "split",
    "format_story",
    "format_stories",
    "create_workflow",
    "create_backlog",
]
