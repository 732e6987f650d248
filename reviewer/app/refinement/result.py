from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny

from reviewer.app.refinement.schemas.common import ComplianceLevel


class StageExecutionError(BaseModel):
    """
    Technical diagnostics for a stage that fell back.

    A fallback never aborts the chain; this record only explains why the
    stage output is the conservative default.
    """

    failure_type: str
    raw_error: Optional[str] = None
    prompt_id: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class StageResult(BaseModel):
    stage_id: str = Field(..., description="Identifier of the stage (e.g. S1)")
    executed: bool = Field(
        True,
        description="False when the stage was skipped without a model call",
    )
    used_fallback: bool = False
    output: SerializeAsAny[BaseModel]
    execution_error: Optional[StageExecutionError] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class RefinementVerdict(BaseModel):
    final_response: str
    compliance: ComplianceLevel
    key_points: List[str] = Field(default_factory=list)
    explanation: str = ""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class RefinementResult(BaseModel):
    """
    Aggregate result of one refinement chain run.
    """

    chain_id: str
    chain_version: str
    subsection_id: str
    stage_results: List[StageResult] = Field(default_factory=list)
    verdict: RefinementVerdict

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    @property
    def stages_executed(self) -> List[str]:
        return [r.stage_id for r in self.stage_results]

    @property
    def fallback_stages(self) -> List[str]:
        return [r.stage_id for r in self.stage_results if r.used_fallback]
