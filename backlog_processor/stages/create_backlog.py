"""
Create Backlog Stage - expands workflow steps into backlog tasks.

Single responsibility: Produce repository-scoped backlog items from the workflow.
"""

from stageflow import StageContext, StageKind, StageOutput

from ..models import BacklogItem, WorkflowStep


def create_backlog(workflow: list[WorkflowStep], repo: str) -> list[BacklogItem]:
    """
    Expand each workflow step into one backlog item per story it holds.

    ``repo`` is copied verbatim onto every item without validation.
    """
    backlog = []
    for step in workflow:
        for position, story in enumerate(step.stories, start=1):
            backlog.append(
                BacklogItem(
                    item_id=len(backlog) + 1,
                    step_id=step.step_id,
                    title=f"{step.name} - task {position}",
                    description=story,
                    repo=repo,
                )
            )
    return backlog


class CreateBacklogStage:
    """Stage that generates backlog tasks from the workflow and repository."""

    name = "create_backlog"
    kind = StageKind.WORK

    async def execute(self, ctx: StageContext) -> StageOutput:
        """Expand the workflow produced by the workflow stage."""
        workflow = ctx.inputs.require_from("create_workflow", "workflow")
        metadata = ctx.snapshot.metadata or {}
        repo = metadata.get("repo")
        if repo is None:
            return StageOutput.fail(error="No repo provided in context metadata")

        backlog = create_backlog(workflow, repo)

        ctx.try_emit_event("backlog.created", {
            "repo": repo,
            "item_count": len(backlog),
        })

        return StageOutput.ok(backlog=backlog, item_count=len(backlog))
