from __future__ import annotations

from typing import List

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.schemas.s2_output import RuleFilteringOutput
from reviewer.app.refinement.schemas.s6_output import (
    ContextualRelevanceOutput,
    RelevanceCheck,
)
from reviewer.app.refinement.stages.base import ModelBackedStage, render_output


class ContextualRelevanceStage(ModelBackedStage):
    """
    S6: check that the cited rules really apply to this subsection.
    """

    stage_id = "S6"
    name = "Contextual Relevance"
    output_schema = ContextualRelevanceOutput

    def context_blocks(self, context: RefinementContext) -> List[str]:
        return [
            render_output("S1 OUTPUT", context.output("S1")),
            render_output("S2 OUTPUT", context.output("S2")),
            render_output("S5 OUTPUT", context.output("S5")),
        ]

    def postprocess(
        self,
        context: RefinementContext,
        output: ContextualRelevanceOutput,
    ) -> ContextualRelevanceOutput:
        check = output.relevance_check
        known = self._cited_ids(context)
        flagged = list(dict.fromkeys(i for i in check.flagged_guideline_ids if i in known))
        return ContextualRelevanceOutput(
            relevance_check=RelevanceCheck(
                is_relevant=check.is_relevant and not flagged,
                adjustments=[a for a in check.adjustments if a.strip()],
                flagged_guideline_ids=flagged,
            )
        )

    def fallback(self, context: RefinementContext) -> ContextualRelevanceOutput:
        return ContextualRelevanceOutput(relevance_check=RelevanceCheck())

    @staticmethod
    def _cited_ids(context: RefinementContext) -> set:
        filtered = context.output("S2")
        if isinstance(filtered, RuleFilteringOutput):
            return {g.id for g in filtered.relevant_guidelines}
        return {rule.id for rule in context.rules}
