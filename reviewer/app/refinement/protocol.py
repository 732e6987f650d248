"""
Refinement chain definition.

Declares the chain identity and its stage ordering (S1-S7) and
validates stage lists before binding them to a RefinementPipeline.
Contains no stage logic.
"""

from typing import List, Optional, Sequence

from reviewer.app.observability import ActivityLog
from reviewer.app.refinement.pipeline import RefinementPipeline
from reviewer.app.refinement.stage_base import RefinementStage


class RefinementProtocol:
    # ------------------------------------------------------------------
    # Identity (FROZEN)
    # ------------------------------------------------------------------
    CHAIN_ID: str = "REFINE"
    CHAIN_VERSION: str = "1.0"

    # ------------------------------------------------------------------
    # Stage ordering
    # ------------------------------------------------------------------
    STAGE_ORDER: List[str] = [
        "S1",  # Context Extraction
        "S2",  # Rule Filtering
        "S3",  # Targeted Summarization
        "S4",  # User Feedback Integration
        "S5",  # Quality Assurance
        "S6",  # Contextual Relevance
        "S7",  # Iterative Refinement
    ]

    @classmethod
    def build_pipeline(
        cls,
        *,
        stages: Sequence[RefinementStage],
        activity_log: Optional[ActivityLog] = None,
    ) -> RefinementPipeline:
        cls._validate_stages(stages)
        return RefinementPipeline(
            chain_id=cls.CHAIN_ID,
            chain_version=cls.CHAIN_VERSION,
            stages=stages,
            activity_log=activity_log,
        )

    @classmethod
    def _validate_stages(cls, stages: Sequence[RefinementStage]) -> None:
        if len(stages) != len(cls.STAGE_ORDER):
            raise ValueError(
                f"The refinement chain requires {len(cls.STAGE_ORDER)} stages "
                f"(S1-S7). Received {len(stages)}."
            )

        for expected, stage in zip(cls.STAGE_ORDER, stages):
            if stage.stage_id != expected:
                raise ValueError(
                    "Refinement stage ordering mismatch: "
                    f"expected stage_id {expected}, got {stage.stage_id}"
                )
