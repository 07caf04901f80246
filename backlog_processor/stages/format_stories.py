"""
Format Stories Stage - turns sentences into user story statements.

Single responsibility: Apply the user story template to each sentence.
"""

from stageflow import StageContext, StageKind, StageOutput

USER_STORY_TEMPLATE = "User Story {ordinal}: As a user, I want {want} so that the goal is achieved."


def format_story(sentence: str, index: int) -> str:
    """Format one sentence as a user story; ``index`` is zero-based."""
    return USER_STORY_TEMPLATE.format(ordinal=index + 1, want=sentence.lower())


def format_stories(sentences: list[str]) -> list[str]:
    """Format sentences in order, numbering them 1..N."""
    return [format_story(sentence, index) for index, sentence in enumerate(sentences)]


class FormatStoriesStage:
    """Stage that generates user stories from split sentences."""

    name = "format_stories"
    kind = StageKind.TRANSFORM

    async def execute(self, ctx: StageContext) -> StageOutput:
        """Format the sentences produced by the split stage."""
        sentences = ctx.inputs.require_from("split_sentences", "sentences")
        stories = format_stories(sentences)

        ctx.try_emit_event("stories.generated", {"count": len(stories)})

        return StageOutput.ok(stories=stories, story_count=len(stories))
