"""
Refinement chain pipeline.

IMPORTANT:
- Stages run strictly in the order given at construction time.
- There is no branching and no early exit: every stage runs.
- A failing stage contributes its conservative fallback output, so the
  last stage always yields a usable verdict. A ConfigurationError is
  not a stage failure and aborts the chain.
"""

from typing import Dict, List, Optional, Sequence

from reviewer.app.errors import ConfigurationError
from reviewer.app.events import (
    AnalysisEvent,
    AnalysisEventType,
    AnalysisEventEmitter,
    NullEventEmitter,
)
from reviewer.app.observability import ActivityLog, NullActivityLog
from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.result import (
    RefinementResult,
    RefinementVerdict,
    StageExecutionError,
    StageResult,
)
from reviewer.app.refinement.schemas.s7_output import IterativeRefinementOutput
from reviewer.app.refinement.stage_base import RefinementStage
from reviewer.app.schemas.rules import Rule


class RefinementPipeline:
    """
    Sequential executor for refinement stages.

    This pipeline owns:
    - stage ordering (frozen at construction)
    - recording each stage output for later stages
    - substituting fallbacks for stages that raise

    It does NOT own stage semantics or prompts.
    """

    def __init__(
        self,
        *,
        chain_id: str,
        chain_version: str,
        stages: Sequence[RefinementStage],
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        self.chain_id = chain_id
        self.chain_version = chain_version
        self._stages = list(stages)  # freeze order
        self._log = activity_log or NullActivityLog()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def run(
        self,
        *,
        subsection_id: str,
        title: str,
        content: str,
        rules: Sequence[Rule] = (),
        section_title: Optional[str] = None,
        sibling_context: Optional[Dict[str, str]] = None,
        feedback: Optional[Sequence[str]] = None,
        run_id: Optional[str] = None,
        emitter: Optional[AnalysisEventEmitter] = None,
    ) -> RefinementResult:
        emitter = emitter or NullEventEmitter()

        context = RefinementContext(
            subsection_id=subsection_id,
            title=title,
            content=content,
            section_title=section_title,
            sibling_context=dict(sibling_context or {}),
            rules=list(rules),
            feedback=[item for item in (feedback or []) if item and item.strip()],
            run_id=run_id,
        )
        context._emitter = emitter

        stage_results: List[StageResult] = []

        for stage in self._stages:
            if run_id is not None:
                await emitter.emit(
                    AnalysisEvent(
                        run_id=run_id,
                        event_type=AnalysisEventType.STAGE_STARTED,
                        details={
                            "chain_id": self.chain_id,
                            "stage_id": stage.stage_id,
                            "subsection_id": subsection_id,
                        },
                    )
                )

            try:
                result = await stage.run(context)
            except ConfigurationError:
                raise
            except Exception as exc:
                result = StageResult(
                    stage_id=stage.stage_id,
                    used_fallback=True,
                    output=stage.fallback(context),
                    execution_error=StageExecutionError(
                        failure_type="unexpected_error",
                        raw_error=str(exc) or exc.__class__.__name__,
                    ),
                )

            if result.used_fallback:
                self._log.warning(
                    "refinement_stage_fallback",
                    stage_id=stage.stage_id,
                    subsection_id=subsection_id,
                    failure_type=(
                        result.execution_error.failure_type
                        if result.execution_error
                        else None
                    ),
                )

            stage_results.append(result)
            context._outputs[stage.stage_id] = result.output

            if run_id is not None:
                await emitter.emit(
                    AnalysisEvent(
                        run_id=run_id,
                        event_type=AnalysisEventType.STAGE_COMPLETED,
                        details={
                            "chain_id": self.chain_id,
                            "stage_id": stage.stage_id,
                            "subsection_id": subsection_id,
                            "used_fallback": result.used_fallback,
                        },
                    )
                )

        return RefinementResult(
            chain_id=self.chain_id,
            chain_version=self.chain_version,
            subsection_id=subsection_id,
            stage_results=stage_results,
            verdict=self._verdict(stage_results),
        )

    @staticmethod
    def _verdict(stage_results: List[StageResult]) -> RefinementVerdict:
        final = stage_results[-1].output if stage_results else None
        if not isinstance(final, IterativeRefinementOutput):
            raise ValueError("The final refinement stage must produce an IterativeRefinementOutput")
        return RefinementVerdict(
            final_response=final.final_response,
            compliance=final.compliance,
            key_points=list(final.key_points),
            explanation=final.explanation,
        )
