from __future__ import annotations

from typing import List

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.result import StageResult
from reviewer.app.refinement.schemas.common import ComplianceLevel, cap
from reviewer.app.refinement.schemas.s3_output import TargetedSummaryOutput
from reviewer.app.refinement.schemas.s4_output import (
    FeedbackIntegrationOutput,
    RefinedAssessment,
)
from reviewer.app.refinement.stages.base import ModelBackedStage, render_output


MAX_ITEMS = 2


def carry_forward(summary: TargetedSummaryOutput | None) -> RefinedAssessment:
    """Project the S3 summary onto the S4 shape without changing it."""
    if summary is None:
        return RefinedAssessment(
            overall_compliance=ComplianceLevel.PARTIALLY_COMPLIANT,
        )
    failing = [a.reason for a in summary.assessment if not a.complies and a.reason]
    passing = [a.reason for a in summary.assessment if a.complies and a.reason]
    return RefinedAssessment(
        overall_compliance=summary.overall_compliance,
        key_points=cap(failing or passing, MAX_ITEMS),
        suggestions=cap(summary.suggestions, MAX_ITEMS),
    )


class FeedbackIntegrationStage(ModelBackedStage):
    """
    S4: adjust key points and suggestions with historical feedback.

    Without a feedback signal the stage makes no model call and carries
    the S3 result forward unchanged.
    """

    stage_id = "S4"
    name = "User Feedback Integration"
    output_schema = FeedbackIntegrationOutput

    async def run(self, context: RefinementContext) -> StageResult:
        if not context.feedback:
            return StageResult(
                stage_id=self.stage_id,
                executed=False,
                output=FeedbackIntegrationOutput(
                    refined_assessment=carry_forward(self._summary(context))
                ),
            )
        return await super().run(context)

    def context_blocks(self, context: RefinementContext) -> List[str]:
        feedback = "\n".join(f"- {item}" for item in context.feedback)
        return [
            render_output("S3 OUTPUT", context.output("S3")),
            f"HISTORICAL FEEDBACK:\n{feedback}",
        ]

    def postprocess(
        self,
        context: RefinementContext,
        output: FeedbackIntegrationOutput,
    ) -> FeedbackIntegrationOutput:
        refined = output.refined_assessment
        return FeedbackIntegrationOutput(
            refined_assessment=RefinedAssessment(
                overall_compliance=refined.overall_compliance,
                key_points=cap(refined.key_points, MAX_ITEMS),
                suggestions=cap(refined.suggestions, MAX_ITEMS),
            )
        )

    def fallback(self, context: RefinementContext) -> FeedbackIntegrationOutput:
        carried = carry_forward(self._summary(context))
        return FeedbackIntegrationOutput(
            refined_assessment=carried.model_copy(
                update={"overall_compliance": ComplianceLevel.PARTIALLY_COMPLIANT}
            )
        )

    @staticmethod
    def _summary(context: RefinementContext) -> TargetedSummaryOutput | None:
        summary = context.output("S3")
        return summary if isinstance(summary, TargetedSummaryOutput) else None
