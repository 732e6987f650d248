from __future__ import annotations

from typing import List

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.schemas.s1_output import ContentLength, ContextExtractionOutput
from reviewer.app.refinement.stages.base import ModelBackedStage


BRIEF_WORD_LIMIT = 80
MEDIUM_WORD_LIMIT = 300


def content_length_bucket(content: str) -> ContentLength:
    words = len((content or "").split())
    if words < BRIEF_WORD_LIMIT:
        return "brief"
    if words < MEDIUM_WORD_LIMIT:
        return "medium"
    return "detailed"


class ContextExtractionStage(ModelBackedStage):
    """
    S1: purpose, key requirements present, content-length bucket.

    The length bucket is always computed locally from the word count.
    """

    stage_id = "S1"
    name = "Context Extraction"
    output_schema = ContextExtractionOutput

    def context_blocks(self, context: RefinementContext) -> List[str]:
        blocks = []
        if context.section_title:
            blocks.append(f"PARENT SECTION: {context.section_title}")
        if context.sibling_context:
            titles = "\n".join(f"- {title}" for title in context.sibling_context)
            blocks.append(f"OTHER SUBSECTIONS IN THIS SECTION:\n{titles}")
        return blocks

    def postprocess(
        self,
        context: RefinementContext,
        output: ContextExtractionOutput,
    ) -> ContextExtractionOutput:
        return output.model_copy(
            update={
                "content_length": content_length_bucket(context.content),
                "key_requirements": [
                    item for item in output.key_requirements if item.strip()
                ],
            }
        )

    def fallback(self, context: RefinementContext) -> ContextExtractionOutput:
        return ContextExtractionOutput(
            section_purpose=f"Purpose of '{context.title}' could not be determined",
            key_requirements=[],
            section_type="general",
            content_length=content_length_bucket(context.content),
            document_context="",
        )
