from __future__ import annotations

from typing import List, Mapping, Optional, Sequence

from reviewer.app.agents.base import EvidenceMixin, evidence_metadata
from reviewer.app.agents.routing import SectionKind
from reviewer.app.events import AnalysisEventEmitter
from reviewer.app.observability import ActivityLog, NullActivityLog
from reviewer.app.refinement.pipeline import RefinementPipeline
from reviewer.app.refinement.result import RefinementResult
from reviewer.app.refinement.schemas.common import ComplianceLevel
from reviewer.app.retrieval.deduplicator import RuleDeduplicator
from reviewer.app.retrieval.retriever import RuleRetriever
from reviewer.app.schemas.rules import ScoredRule
from reviewer.app.schemas.verdicts import AgentVerdict


SCORE_BY_COMPLIANCE = {
    ComplianceLevel.COMPLIANT: 90,
    ComplianceLevel.PARTIALLY_COMPLIANT: 60,
    ComplianceLevel.NON_COMPLIANT: 30,
}


class RefinementChainAgent(EvidenceMixin):
    """
    Deep checker: runs the seven-stage refinement chain on a subsection.

    Used for every kind when the chain is enabled. Only a fully
    compliant chain verdict counts as compliant.
    """

    kind = SectionKind.GENERAL

    def __init__(
        self,
        *,
        retriever: RuleRetriever,
        pipeline: RefinementPipeline,
        deduplicator: Optional[RuleDeduplicator] = None,
        top_k: int = 5,
        corpus: Optional[str] = None,
        no_evidence_penalty: int = 10,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        self._pipeline = pipeline
        self._log = activity_log or NullActivityLog()
        self._init_evidence(
            retriever=retriever,
            deduplicator=deduplicator,
            top_k=top_k,
            corpus=corpus,
            no_evidence_penalty=no_evidence_penalty,
        )

    async def refine(
        self,
        title: str,
        content: str,
        sibling_context: Optional[Mapping[str, str]] = None,
        *,
        subsection_id: Optional[str] = None,
        section_title: Optional[str] = None,
        feedback: Optional[Sequence[str]] = None,
        run_id: Optional[str] = None,
        emitter: Optional[AnalysisEventEmitter] = None,
    ) -> RefinementResult:
        evidence = await self._gather_evidence(content, title)
        return await self._run_chain(
            title,
            content,
            evidence,
            sibling_context,
            subsection_id=subsection_id,
            section_title=section_title,
            feedback=feedback,
            run_id=run_id,
            emitter=emitter,
        )

    async def analyze(
        self,
        title: str,
        content: str,
        sibling_context: Optional[Mapping[str, str]] = None,
        *,
        subsection_id: Optional[str] = None,
        section_title: Optional[str] = None,
    ) -> AgentVerdict:
        evidence = await self._gather_evidence(content, title)
        result = await self._run_chain(
            title,
            content,
            evidence,
            sibling_context,
            subsection_id=subsection_id,
            section_title=section_title,
        )
        return self.to_verdict(result, evidence)

    def to_verdict(
        self,
        result: RefinementResult,
        evidence: Sequence[ScoredRule] = (),
    ) -> AgentVerdict:
        verdict = result.verdict
        score = SCORE_BY_COMPLIANCE[verdict.compliance]

        suggestions = self._final_suggestions(result) or [verdict.final_response]

        return AgentVerdict(
            is_compliant=verdict.compliance == ComplianceLevel.COMPLIANT,
            score=self._apply_evidence(score, evidence),
            suggestions=suggestions,
            metadata={
                "agent": "refinement_chain",
                "chain_id": result.chain_id,
                "chain_version": result.chain_version,
                "compliance": verdict.compliance.value,
                "key_points": list(verdict.key_points),
                "explanation": verdict.explanation,
                "fallback_stages": result.fallback_stages,
                **evidence_metadata(list(evidence)),
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_chain(
        self,
        title: str,
        content: str,
        evidence: Sequence[ScoredRule],
        sibling_context: Optional[Mapping[str, str]],
        *,
        subsection_id: Optional[str] = None,
        section_title: Optional[str] = None,
        feedback: Optional[Sequence[str]] = None,
        run_id: Optional[str] = None,
        emitter: Optional[AnalysisEventEmitter] = None,
    ) -> RefinementResult:
        result = await self._pipeline.run(
            subsection_id=subsection_id or title,
            title=title,
            content=content,
            rules=[item.rule for item in evidence],
            section_title=section_title,
            sibling_context=sibling_context,
            feedback=feedback,
            run_id=run_id,
            emitter=emitter,
        )
        if result.fallback_stages:
            self._log.warning(
                "refinement_chain_degraded",
                subsection_id=result.subsection_id,
                fallback_stages=result.fallback_stages,
            )
        return result

    @staticmethod
    def _final_suggestions(result: RefinementResult) -> List[str]:
        for stage in result.stage_results:
            if stage.stage_id == "S5":
                assessment = getattr(stage.output, "final_assessment", None)
                if assessment is not None:
                    return list(assessment.suggestions)
        return []
