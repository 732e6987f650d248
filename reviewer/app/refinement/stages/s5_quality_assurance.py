from __future__ import annotations

import re
from typing import List

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.schemas.common import ComplianceLevel, cap
from reviewer.app.refinement.schemas.s4_output import (
    FeedbackIntegrationOutput,
    RefinedAssessment,
)
from reviewer.app.refinement.schemas.s5_output import (
    FinalAssessment,
    QualityAssuranceOutput,
)
from reviewer.app.refinement.stages.base import ModelBackedStage, render_output


MAX_VERDICT_WORDS = 150
MAX_ITEMS = 2

# Sentences built around these phrases carry no concrete information
GENERIC_PHRASES = (
    "consider reviewing",
    "it is important to",
    "it is recommended to",
    "ensure compliance with all",
    "in general",
    "as appropriate",
    "best practices",
)

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

VERDICT_BY_LEVEL = {
    ComplianceLevel.COMPLIANT: "This subsection meets the applicable listing requirements.",
    ComplianceLevel.PARTIALLY_COMPLIANT: "This subsection partially meets the applicable listing requirements.",
    ComplianceLevel.NON_COMPLIANT: "This subsection does not meet the applicable listing requirements.",
}


def is_generic(sentence: str) -> bool:
    lowered = sentence.lower()
    return any(phrase in lowered for phrase in GENERIC_PHRASES)


def strip_generic(text: str) -> str:
    sentences = _SENTENCE_SPLIT.split((text or "").strip())
    return " ".join(s for s in sentences if s and not is_generic(s)).strip()


def limit_words(text: str, limit: int) -> str:
    words = text.split()
    if len(words) <= limit:
        return text
    return " ".join(words[:limit]).rstrip(",;:") + "..."


class QualityAssuranceStage(ModelBackedStage):
    """
    S5: make the S4 assessment concise and concrete.

    Generic sentences are removed, the verdict is limited to 150 words
    and key points / suggestions to two items each.
    """

    stage_id = "S5"
    name = "Quality Assurance"
    output_schema = QualityAssuranceOutput

    def context_blocks(self, context: RefinementContext) -> List[str]:
        return [render_output("S4 OUTPUT", context.output("S4"))]

    def postprocess(
        self,
        context: RefinementContext,
        output: QualityAssuranceOutput,
    ) -> QualityAssuranceOutput:
        final = output.final_assessment
        verdict = limit_words(strip_generic(final.verdict), MAX_VERDICT_WORDS)
        if not verdict:
            verdict = VERDICT_BY_LEVEL[self._level(context)]
        return QualityAssuranceOutput(
            final_assessment=FinalAssessment(
                verdict=verdict,
                key_points=cap(
                    [p for p in final.key_points if not is_generic(p)], MAX_ITEMS
                ),
                suggestions=cap(
                    [s for s in final.suggestions if not is_generic(s)], MAX_ITEMS
                ),
            )
        )

    def fallback(self, context: RefinementContext) -> QualityAssuranceOutput:
        refined = self._refined(context)
        return QualityAssuranceOutput(
            final_assessment=FinalAssessment(
                verdict=VERDICT_BY_LEVEL[refined.overall_compliance],
                key_points=cap(refined.key_points, MAX_ITEMS),
                suggestions=cap(refined.suggestions, MAX_ITEMS),
            )
        )

    def _level(self, context: RefinementContext) -> ComplianceLevel:
        return self._refined(context).overall_compliance

    @staticmethod
    def _refined(context: RefinementContext) -> RefinedAssessment:
        prior = context.output("S4")
        if isinstance(prior, FeedbackIntegrationOutput):
            return prior.refined_assessment
        return RefinedAssessment()
