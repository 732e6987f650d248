"""
Refinement chain assembler.

Assembles the concrete S1-S7 RefinementPipeline from already-constructed
dependencies.

This module:
- wires stages together
- enforces chain shape via RefinementProtocol

It does NOT:
- construct executors
- interpret config
- contain stage rules
"""

from typing import Callable, List, Optional

from reviewer.app.llm.executor import StructuredLLMExecutor
from reviewer.app.llm.prompt_fragment import PromptFragment
from reviewer.app.observability import ActivityLog
from reviewer.app.refinement.pipeline import RefinementPipeline
from reviewer.app.refinement.protocol import RefinementProtocol
from reviewer.app.refinement.stage_base import RefinementStage
from reviewer.app.refinement.stages.s1_context_extraction import ContextExtractionStage
from reviewer.app.refinement.stages.s2_rule_filtering import RuleFilteringStage
from reviewer.app.refinement.stages.s3_targeted_summary import TargetedSummaryStage
from reviewer.app.refinement.stages.s4_feedback_integration import FeedbackIntegrationStage
from reviewer.app.refinement.stages.s5_quality_assurance import QualityAssuranceStage
from reviewer.app.refinement.stages.s6_contextual_relevance import ContextualRelevanceStage
from reviewer.app.refinement.stages.s7_iterative_refinement import IterativeRefinementStage


STAGE_CLASSES = (
    ContextExtractionStage,
    RuleFilteringStage,
    TargetedSummaryStage,
    FeedbackIntegrationStage,
    QualityAssuranceStage,
    ContextualRelevanceStage,
    IterativeRefinementStage,
)


def build_refinement_pipeline(
    *,
    executor: StructuredLLMExecutor,
    prompt_factory: Callable[[str], PromptFragment],
    activity_log: Optional[ActivityLog] = None,
) -> RefinementPipeline:
    """
    Assemble the refinement pipeline.

    Args:
        executor: Concrete StructuredLLMExecutor
        prompt_factory: Callable(stage_id) -> PromptFragment
    """

    stages: List[RefinementStage] = [
        stage_cls(executor=executor, prompt=prompt_factory(stage_cls.stage_id))
        for stage_cls in STAGE_CLASSES
    ]

    return RefinementProtocol.build_pipeline(stages=stages, activity_log=activity_log)
