"""
Create Workflow Stage - groups user stories into ordered workflow steps.

Single responsibility: Batch consecutive stories into numbered steps.
"""

from stageflow import StageContext, StageKind, StageOutput

from ..models import WorkflowStep


def create_workflow(stories: list[str], stories_per_step: int = 1) -> list[WorkflowStep]:
    """
    Group stories into workflow steps.

    Consecutive batches of ``stories_per_step`` stories form one step; the
    last step may hold fewer. Step ids start at 1 and follow input order.
    """
    if stories_per_step < 1:
        raise ValueError(f"stories_per_step must be >= 1, got {stories_per_step}")

    workflow = []
    for start in range(0, len(stories), stories_per_step):
        step_id = len(workflow) + 1
        workflow.append(
            WorkflowStep(
                step_id=step_id,
                name=f"Step {step_id}",
                stories=tuple(stories[start:start + stories_per_step]),
            )
        )
    return workflow


class CreateWorkflowStage:
    """Stage that creates a workflow from user stories."""

    name = "create_workflow"
    kind = StageKind.TRANSFORM

    def __init__(self, stories_per_step: int = 1):
        self.stories_per_step = stories_per_step

    async def execute(self, ctx: StageContext) -> StageOutput:
        """Group the stories produced by the format stage."""
        stories = ctx.inputs.require_from("format_stories", "stories")
        workflow = create_workflow(stories, self.stories_per_step)

        return StageOutput.ok(workflow=workflow, step_count=len(workflow))
