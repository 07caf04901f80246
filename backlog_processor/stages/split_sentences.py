"""
Split Sentences Stage - breaks the refined epic into sentence units.

Single responsibility: Strip the refined label and split on sentence terminators.
"""

from stageflow import StageContext, StageKind, StageOutput

from ..models import REFINED_EPIC_LABEL

SENTENCE_TERMINATOR = "."


def split(refined: str) -> list[str]:
    """
    Split refined epic text into trimmed, non-empty sentences.

    The label is removed only on an exact prefix match; text without it
    passes through unchanged.
    """
    text = refined
    if text.startswith(REFINED_EPIC_LABEL):
        text = text[len(REFINED_EPIC_LABEL):]

    fragments = (fragment.strip() for fragment in text.split(SENTENCE_TERMINATOR))
    return [fragment for fragment in fragments if fragment]


class SplitSentencesStage:
    """Stage that splits the refined epic into sentences."""

    name = "split_sentences"
    kind = StageKind.TRANSFORM

    async def execute(self, ctx: StageContext) -> StageOutput:
        """Split the output of the refine stage."""
        refined = ctx.inputs.require_from("refine_epic", "refined")
        sentences = split(refined)

        return StageOutput.ok(sentences=sentences, sentence_count=len(sentences))
