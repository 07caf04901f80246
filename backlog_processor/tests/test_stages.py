"""
Tests for the individual pipeline stages:
- Epic refinement (whitespace normalization and labelling)
- Sentence splitting
- User story formatting
- Workflow grouping
- Backlog expansion
"""

import re
from unittest.mock import MagicMock

import pytest
from stageflow import StageOutput
from stageflow.testing import create_test_stage_context

from ..models import REFINED_EPIC_LABEL, BacklogItem, WorkflowStep
from ..stages import (
    CreateBacklogStage,
    CreateWorkflowStage,
    FormatStoriesStage,
    RefineEpicStage,
    SplitSentencesStage,
    create_backlog,
    create_workflow,
    format_stories,
    format_story,
    normalize,
    split,
)

SAMPLE_TEXTS = [
    "",
    "   ",
    "\t\n",
    "Build an app",
    "  Build an app.   Track orders.  ",
    "One.\n\nTwo.\tThree...",
    "no terminator at all",
    "...",
    " Refined Epic: already labelled. ",
]


def _stories(count: int) -> list[str]:
    return format_stories([f"Sentence {n}" for n in range(1, count + 1)])


class TestNormalize:
    """Tests for epic refinement."""

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_starts_with_label(self, text):
        """Every refined epic carries the label prefix."""
        assert normalize(text).startswith(REFINED_EPIC_LABEL)

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_no_consecutive_whitespace(self, text):
        """Whitespace runs are collapsed to a single space."""
        assert re.search(r"\s\s", normalize(text)) is None

    def test_trims_and_collapses(self):
        assert normalize("  Build an app.   Track orders.  ") == "Refined Epic: Build an app. Track orders."

    def test_empty_input(self):
        """Empty input still yields the bare label."""
        assert normalize("") == "Refined Epic: "

    def test_whitespace_only_input(self):
        assert normalize(" \t\n ") == "Refined Epic: "

    def test_mixed_whitespace_characters(self):
        assert normalize("a\t\tb\n\nc") == "Refined Epic: a b c"

    def test_byte_order_mark_is_whitespace(self):
        assert normalize("\ufeffa\ufeff\ufeffb \ufeff") == "Refined Epic: a b"


class TestSplit:
    """Tests for sentence splitting."""

    def test_splits_on_periods(self):
        assert split("Refined Epic: Build an app. Track orders.") == ["Build an app", "Track orders"]

    def test_empty_refined_epic(self):
        assert split("Refined Epic: ") == []

    def test_no_terminator_yields_whole_text(self):
        assert split("Refined Epic: Build an app") == ["Build an app"]

    def test_drops_empty_fragments(self):
        assert split("Refined Epic: One.. . Two...") == ["One", "Two"]

    def test_label_absent_passes_through(self):
        """Text without the exact label is split as-is."""
        assert split("Build an app. Track orders") == ["Build an app", "Track orders"]

    def test_label_requires_exact_match(self):
        """A lowercase label is not stripped."""
        assert split("refined epic: Build an app") == ["refined epic: Build an app"]

    def test_is_deterministic(self):
        refined = normalize("One. Two. Three.")
        assert split(refined) == split(refined)

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_count_matches_non_empty_fragments(self, text):
        """Sentence count equals the non-empty trimmed fragments after label removal."""
        refined = normalize(text)
        body = refined[len(REFINED_EPIC_LABEL):]
        expected = [fragment.strip() for fragment in body.split(".") if fragment.strip()]
        assert len(split(refined)) == len(expected)


class TestFormatStories:
    """Tests for user story formatting."""

    def test_format_single_story(self):
        assert format_story("Build an app", 0) == (
            "User Story 1: As a user, I want build an app so that the goal is achieved."
        )

    def test_ordinal_is_index_plus_one(self):
        assert format_story("Track orders", 4).startswith("User Story 5: ")

    def test_ordinals_are_sequential(self):
        stories = format_stories(["A", "B", "C", "D"])
        ordinals = [int(re.match(r"User Story (\d+): ", story).group(1)) for story in stories]
        assert ordinals == [1, 2, 3, 4]

    def test_template_bounds(self):
        for story in format_stories(["Build an app", "Track orders"]):
            assert story.startswith("User Story ")
            assert story.endswith(" so that the goal is achieved.")

    def test_numbering_restarts_per_call(self):
        assert format_stories(["A"]) == format_stories(["A"])

    def test_empty_sentences(self):
        assert format_stories([]) == []


class TestCreateWorkflow:
    """Tests for workflow grouping."""

    def test_empty_stories(self):
        assert create_workflow([]) == []

    def test_one_step_per_story_by_default(self):
        stories = _stories(3)
        workflow = create_workflow(stories)

        assert [step.step_id for step in workflow] == [1, 2, 3]
        assert [step.stories for step in workflow] == [(story,) for story in stories]
        assert workflow[0].name == "Step 1"

    def test_batches_consecutive_stories(self):
        stories = _stories(5)
        workflow = create_workflow(stories, stories_per_step=2)

        assert [step.step_id for step in workflow] == [1, 2, 3]
        assert workflow[0].stories == tuple(stories[0:2])
        assert workflow[1].stories == tuple(stories[2:4])
        assert workflow[2].stories == (stories[4],)

    def test_preserves_story_order(self):
        stories = _stories(4)
        workflow = create_workflow(stories, stories_per_step=3)
        flattened = [story for step in workflow for story in step.stories]
        assert flattened == stories

    def test_is_deterministic(self):
        stories = _stories(3)
        assert create_workflow(stories) == create_workflow(stories)

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError, match="stories_per_step must be >= 1"):
            create_workflow(_stories(1), stories_per_step=0)

    def test_to_dict(self):
        step = WorkflowStep(step_id=1, name="Step 1", stories=("User Story 1: x",))
        assert step.to_dict() == {"step_id": 1, "name": "Step 1", "stories": ["User Story 1: x"]}


class TestCreateBacklog:
    """Tests for backlog expansion."""

    @pytest.mark.parametrize("repo", ["", "username/repo", "not a repo at all"])
    def test_empty_workflow(self, repo):
        assert create_backlog([], repo) == []

    def test_one_item_per_single_story_step(self):
        workflow = create_workflow(_stories(2))
        backlog = create_backlog(workflow, "acme/shop")

        assert [item.item_id for item in backlog] == [1, 2]
        assert [item.step_id for item in backlog] == [1, 2]
        assert [item.description for item in backlog] == [step.stories[0] for step in workflow]

    def test_one_item_per_story_in_batched_step(self):
        workflow = create_workflow(_stories(3), stories_per_step=2)
        backlog = create_backlog(workflow, "acme/shop")

        assert [item.item_id for item in backlog] == [1, 2, 3]
        assert [item.step_id for item in backlog] == [1, 1, 2]
        assert backlog[1].title == "Step 1 - task 2"

    def test_repo_copied_verbatim(self):
        """No validation: even empty or odd repo strings are kept as-is."""
        workflow = create_workflow(_stories(2))
        for repo in ["", "  spaced  ", "username/repo"]:
            assert {item.repo for item in create_backlog(workflow, repo)} == {repo}

    def test_to_dict(self):
        item = BacklogItem(item_id=1, step_id=1, title="Step 1 - task 1", description="d", repo="r")
        assert item.to_dict() == {
            "item_id": 1,
            "step_id": 1,
            "title": "Step 1 - task 1",
            "description": "d",
            "repo": "r",
        }


class TestStageExecution:
    """Tests for the stage wrappers around the pure transformations."""

    @pytest.mark.asyncio
    async def test_refine_stage_reads_input_text(self):
        stage = RefineEpicStage()
        mock_ctx = MagicMock()
        mock_ctx.snapshot.input_text = "  Build an app.   Track orders.  "
        mock_ctx.try_emit_event = MagicMock()

        result = await stage.execute(mock_ctx)

        assert result.status.value == "ok"
        assert result.data["refined"] == "Refined Epic: Build an app. Track orders."
        mock_ctx.try_emit_event.assert_called_once()

    @pytest.mark.asyncio
    async def test_split_stage_reads_refine_output(self):
        stage = SplitSentencesStage()
        ctx = create_test_stage_context(
            stage_name="split_sentences",
            prior_outputs={"refine_epic": StageOutput.ok(refined="Refined Epic: A. B.")},
        )

        result = await stage.execute(ctx)

        assert result.data["sentences"] == ["A", "B"]
        assert result.data["sentence_count"] == 2

    @pytest.mark.asyncio
    async def test_split_stage_requires_refine_output(self):
        stage = SplitSentencesStage()
        ctx = create_test_stage_context(stage_name="split_sentences")

        with pytest.raises(KeyError, match="refine_epic"):
            await stage.execute(ctx)

    @pytest.mark.asyncio
    async def test_format_stage(self):
        stage = FormatStoriesStage()
        ctx = create_test_stage_context(
            stage_name="format_stories",
            prior_outputs={"split_sentences": StageOutput.ok(sentences=["Build an app"])},
        )

        result = await stage.execute(ctx)

        assert result.data["stories"] == [
            "User Story 1: As a user, I want build an app so that the goal is achieved."
        ]
        assert result.data["story_count"] == 1

    @pytest.mark.asyncio
    async def test_workflow_stage_uses_configured_batch_size(self):
        stage = CreateWorkflowStage(stories_per_step=2)
        mock_ctx = MagicMock()
        mock_ctx.inputs.require_from = MagicMock(return_value=_stories(3))

        result = await stage.execute(mock_ctx)

        mock_ctx.inputs.require_from.assert_called_once_with("format_stories", "stories")
        assert result.data["step_count"] == 2

    @pytest.mark.asyncio
    async def test_backlog_stage_uses_run_repo(self):
        stage = CreateBacklogStage()
        mock_ctx = MagicMock()
        mock_ctx.inputs.require_from = MagicMock(return_value=create_workflow(_stories(2)))
        mock_ctx.snapshot.metadata = {"repo": "acme/shop"}
        mock_ctx.try_emit_event = MagicMock()

        result = await stage.execute(mock_ctx)

        assert result.status.value == "ok"
        assert result.data["item_count"] == 2
        assert all(item.repo == "acme/shop" for item in result.data["backlog"])

    @pytest.mark.asyncio
    async def test_backlog_stage_fails_without_repo(self):
        stage = CreateBacklogStage()
        mock_ctx = MagicMock()
        mock_ctx.inputs.require_from = MagicMock(return_value=[])
        mock_ctx.snapshot.metadata = {}

        result = await stage.execute(mock_ctx)

        assert result.status.value == "fail"
        assert "repo" in result.error
