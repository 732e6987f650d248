from __future__ import annotations

from typing import List

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.schemas.common import ComplianceLevel, cap
from reviewer.app.refinement.schemas.s4_output import FeedbackIntegrationOutput
from reviewer.app.refinement.schemas.s5_output import QualityAssuranceOutput
from reviewer.app.refinement.schemas.s7_output import IterativeRefinementOutput
from reviewer.app.refinement.stages.base import ModelBackedStage, render_output


MAX_KEY_POINTS = 2

MANUAL_REVIEW_RESPONSE = (
    "This subsection could not be fully assessed automatically. "
    "Please review it manually against the applicable listing requirements."
)


class IterativeRefinementStage(ModelBackedStage):
    """
    S7: the single conversational verdict shown to the author.

    Always yields between one and two key points.
    """

    stage_id = "S7"
    name = "Iterative Refinement"
    output_schema = IterativeRefinementOutput

    def context_blocks(self, context: RefinementContext) -> List[str]:
        return [
            render_output("S4 OUTPUT", context.output("S4")),
            render_output("S5 OUTPUT", context.output("S5")),
            render_output("S6 OUTPUT", context.output("S6")),
        ]

    def postprocess(
        self,
        context: RefinementContext,
        output: IterativeRefinementOutput,
    ) -> IterativeRefinementOutput:
        final_response = output.final_response.strip() or self._prior_verdict(context)
        key_points = cap(output.key_points, MAX_KEY_POINTS)
        if not key_points:
            key_points = [final_response or output.explanation or MANUAL_REVIEW_RESPONSE]
        return IterativeRefinementOutput(
            final_response=final_response or MANUAL_REVIEW_RESPONSE,
            compliance=output.compliance,
            key_points=key_points,
            explanation=output.explanation,
        )

    def fallback(self, context: RefinementContext) -> IterativeRefinementOutput:
        return IterativeRefinementOutput(
            final_response=MANUAL_REVIEW_RESPONSE,
            compliance=ComplianceLevel.PARTIALLY_COMPLIANT,
            key_points=[MANUAL_REVIEW_RESPONSE],
            explanation="Automated refinement did not produce a result",
        )

    @staticmethod
    def _prior_verdict(context: RefinementContext) -> str:
        qa = context.output("S5")
        if isinstance(qa, QualityAssuranceOutput):
            return qa.final_assessment.verdict.strip()
        refined = context.output("S4")
        if isinstance(refined, FeedbackIntegrationOutput):
            points = refined.refined_assessment.key_points
            return points[0] if points else ""
        return ""
