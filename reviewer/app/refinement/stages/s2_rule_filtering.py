from __future__ import annotations

from typing import List

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.schemas.s2_output import RelevantGuideline, RuleFilteringOutput
from reviewer.app.refinement.stages.base import ModelBackedStage, render_output


FALLBACK_RELEVANCE = 50


class RuleFilteringStage(ModelBackedStage):
    """
    S2: keep only rules that apply to this subsection.

    Ids the model invents are dropped; each rule appears at most once,
    ordered by relevance.
    """

    stage_id = "S2"
    name = "Rule Filtering"
    output_schema = RuleFilteringOutput

    def context_blocks(self, context: RefinementContext) -> List[str]:
        if context.rules:
            rules = "\n".join(
                f"- id={rule.id} [{rule.category.value}/{rule.severity.value}] "
                f"{rule.title}: {rule.description}"
                for rule in context.rules
            )
        else:
            rules = "(no candidate guidelines)"
        return [
            render_output("S1 OUTPUT", context.output("S1")),
            f"CANDIDATE GUIDELINES:\n{rules}",
        ]

    def postprocess(
        self,
        context: RefinementContext,
        output: RuleFilteringOutput,
    ) -> RuleFilteringOutput:
        known = {rule.id for rule in context.rules}
        kept = {}
        for guideline in output.relevant_guidelines:
            if guideline.id not in known:
                continue
            current = kept.get(guideline.id)
            if current is None or guideline.relevance_score > current.relevance_score:
                kept[guideline.id] = guideline
        ordered = sorted(kept.values(), key=lambda g: (-g.relevance_score, g.id))
        return RuleFilteringOutput(relevant_guidelines=ordered)

    def fallback(self, context: RefinementContext) -> RuleFilteringOutput:
        return RuleFilteringOutput(
            relevant_guidelines=[
                RelevantGuideline(
                    id=rule.id,
                    relevance_score=FALLBACK_RELEVANCE,
                    reason="Retained without filtering",
                )
                for rule in context.rules
            ]
        )
