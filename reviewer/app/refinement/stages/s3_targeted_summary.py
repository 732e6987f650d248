from __future__ import annotations

from typing import List, Optional

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.schemas.common import ComplianceLevel, cap
from reviewer.app.refinement.schemas.s2_output import RuleFilteringOutput
from reviewer.app.refinement.schemas.s3_output import (
    GuidelineAssessment,
    TargetedSummaryOutput,
)
from reviewer.app.refinement.stages.base import ModelBackedStage, render_output


MAX_SUGGESTIONS = 3


def overall_from_assessment(
    assessment: List[GuidelineAssessment],
) -> Optional[ComplianceLevel]:
    if not assessment:
        return None
    passed = sum(1 for item in assessment if item.complies)
    if passed == len(assessment):
        return ComplianceLevel.COMPLIANT
    if passed == 0:
        return ComplianceLevel.NON_COMPLIANT
    return ComplianceLevel.PARTIALLY_COMPLIANT


class TargetedSummaryStage(ModelBackedStage):
    """
    S3: per-rule compliance with a one-sentence reason.

    Only rules retained by S2 are judged. The overall tri-state is
    derived from those judgements when there are any; suggestions are
    kept only for non-compliant results.
    """

    stage_id = "S3"
    name = "Targeted Summarization"
    output_schema = TargetedSummaryOutput

    def context_blocks(self, context: RefinementContext) -> List[str]:
        retained = self._retained_ids(context)
        rules = "\n".join(
            f"- id={rule.id} {rule.title}: {rule.description}"
            for rule in context.rules
            if rule.id in retained
        ) or "(no relevant guidelines retained)"
        return [
            render_output("S1 OUTPUT", context.output("S1")),
            render_output("S2 OUTPUT", context.output("S2")),
            f"RELEVANT GUIDELINES:\n{rules}",
        ]

    def postprocess(
        self,
        context: RefinementContext,
        output: TargetedSummaryOutput,
    ) -> TargetedSummaryOutput:
        retained = self._retained_ids(context)
        assessment = [
            item for item in output.assessment if item.guideline_id in retained
        ]
        overall = overall_from_assessment(assessment) or output.overall_compliance
        suggestions = (
            cap(output.suggestions, MAX_SUGGESTIONS)
            if overall == ComplianceLevel.NON_COMPLIANT
            else []
        )
        return TargetedSummaryOutput(
            overall_compliance=overall,
            assessment=assessment,
            suggestions=suggestions,
        )

    def fallback(self, context: RefinementContext) -> TargetedSummaryOutput:
        return TargetedSummaryOutput(
            overall_compliance=ComplianceLevel.PARTIALLY_COMPLIANT,
            assessment=[],
            suggestions=[],
        )

    @staticmethod
    def _retained_ids(context: RefinementContext) -> set:
        filtered = context.output("S2")
        if not isinstance(filtered, RuleFilteringOutput):
            return {rule.id for rule in context.rules}
        return {g.id for g in filtered.relevant_guidelines}
