from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from reviewer.app.events import AnalysisEventEmitter
from reviewer.app.schemas.rules import Rule


class RefinementContext(BaseModel):
    """
    Immutable inputs shared by every stage of the refinement chain.

    IMPORTANT:
    - Stages read prior outputs through `output()`; they never write to
      the context. The pipeline records each stage output after it runs.
    - `feedback` is optional; an empty list means no feedback signal.
    """

    # ------------------------------------------------------------------
    # Subsection under analysis
    # ------------------------------------------------------------------

    subsection_id: str
    title: str
    content: str
    section_title: Optional[str] = None

    sibling_context: Dict[str, str] = Field(
        default_factory=dict,
        description="Title to content of the other subsections in the section",
    )

    rules: List[Rule] = Field(
        default_factory=list,
        description="Deduplicated candidate rules for rule filtering",
    )

    feedback: List[str] = Field(
        default_factory=list,
        description="Historical reviewer feedback for this kind of subsection",
    )

    run_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Runtime-only plumbing (NOT model fields)
    # ------------------------------------------------------------------

    _emitter: Optional[AnalysisEventEmitter] = PrivateAttr(default=None)
    _outputs: Dict[str, BaseModel] = PrivateAttr(default_factory=dict)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    # ------------------------------------------------------------------
    # Convenience accessors (read-only)
    # ------------------------------------------------------------------

    @property
    def emitter(self) -> Optional[AnalysisEventEmitter]:
        return self._emitter

    def output(self, stage_id: str) -> Optional[BaseModel]:
        return self._outputs.get(stage_id)

    def prior_outputs(self) -> Dict[str, BaseModel]:
        """Snapshot of every stage output recorded so far, in stage order."""
        return dict(self._outputs)

    def rule_by_id(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None
