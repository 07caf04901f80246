"""
Stage Output Interceptor - writes each stage's output to the output log.

A pass-through side channel: errors here are isolated by stageflow and
never change what a pipeline run returns.
"""

import json

from stageflow import BaseInterceptor

from ..utils.logger import OUTPUT_CHANNEL, get_logger


class StageOutputInterceptor(BaseInterceptor):
    """
    Interceptor that dumps intermediate results, one line per record.

    Emits the raw epic, the refined epic, every user story, every workflow
    step and every backlog item.
    """

    name = "stage_output"
    priority = 60  # After observability

    def __init__(self, logger_name: str = OUTPUT_CHANNEL):
        self.logger = get_logger(logger_name)

    async def before(self, stage_name: str, ctx) -> None:
        """Record the raw epic as the run enters its first stage."""
        if stage_name == "refine_epic":
            self.logger.info(f"Original epic: {ctx.input_text}")

    async def after(self, stage_name: str, result, ctx) -> None:
        """Dump the completed stage's output."""
        if getattr(result, "status", None) != "completed":
            return

        data = result.data or {}

        if stage_name == "refine_epic":
            self.logger.info(f"Refined epic: {data.get('refined')}")
        elif stage_name == "split_sentences":
            self.logger.debug(f"Sentences: {data.get('sentences')}")
        elif stage_name == "format_stories":
            self._dump("User stories:", data.get("stories", []))
        elif stage_name == "create_workflow":
            self._dump("Workflow:", [json.dumps(step.to_dict()) for step in data.get("workflow", [])])
        elif stage_name == "create_backlog":
            self._dump("Backlog items:", [json.dumps(item.to_dict()) for item in data.get("backlog", [])])

    def _dump(self, heading: str, lines: list[str]) -> None:
        self.logger.info(heading)
        for line in lines:
            self.logger.info(f"  - {line}")
