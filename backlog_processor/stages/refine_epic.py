"""
Refine Epic Stage - normalizes the raw epic text.

Single responsibility: Collapse whitespace and tag the text with the refined label.
"""

import re

from stageflow import StageContext, StageKind, StageOutput

from ..models import REFINED_EPIC_LABEL

# \s does not match the byte order mark (U+FEFF)
_WHITESPACE_RUN = re.compile(r"[\s\ufeff]+")


def normalize(text: str) -> str:
    """Trim, collapse internal whitespace runs to one space, and prepend the label."""
    cleaned = _WHITESPACE_RUN.sub(" ", text).strip(" ")
    return f"{REFINED_EPIC_LABEL}{cleaned}"


class RefineEpicStage:
    """Stage that refines the raw epic supplied as the run's input text."""

    name = "refine_epic"
    kind = StageKind.TRANSFORM

    async def execute(self, ctx: StageContext) -> StageOutput:
        """Refine the epic from the context snapshot."""
        epic = ctx.snapshot.input_text
        refined = normalize(epic)

        ctx.try_emit_event("epic.refined", {"length": len(refined)})

        return StageOutput.ok(refined=refined)
