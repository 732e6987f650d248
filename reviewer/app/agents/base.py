from __future__ import annotations

from typing import List, Mapping, Optional, Protocol, Sequence

from reviewer.app.agents.routing import KIND_KEYWORDS, SectionKind, routing_text
from reviewer.app.observability import ActivityLog, NullActivityLog
from reviewer.app.retrieval.deduplicator import RuleDeduplicator
from reviewer.app.retrieval.retriever import RuleRetriever
from reviewer.app.schemas.rules import ScoredRule
from reviewer.app.schemas.verdicts import AgentVerdict


MISROUTED_SUGGESTION = "This section should be analyzed by a different agent"


class SectionAgent(Protocol):
    """
    Checker for one kind of subsection.

    Implementations return a verdict for every input, including
    misrouted ones. Retrieval errors are left to propagate so that the
    orchestrator can isolate the subsection.
    """

    kind: SectionKind

    async def analyze(
        self,
        title: str,
        content: str,
        sibling_context: Optional[Mapping[str, str]] = None,
        *,
        subsection_id: Optional[str] = None,
        section_title: Optional[str] = None,
    ) -> AgentVerdict:
        ...


class KeywordGatedAgent:
    """
    Shared behaviour for agents that only accept titles carrying one of
    their routing keywords.
    """

    kind: SectionKind

    def __init__(self, *, activity_log: Optional[ActivityLog] = None) -> None:
        self._log = activity_log or NullActivityLog()

    def accepts(self, title: str, section_title: Optional[str] = None) -> bool:
        text = routing_text(title, section_title)
        return any(keyword in text for keyword in KIND_KEYWORDS[self.kind])

    def misrouted(self, title: str) -> AgentVerdict:
        self._log.warning("agent_misrouted", agent=self.kind.value, title=title)
        return AgentVerdict(
            is_compliant=False,
            score=0,
            suggestions=[MISROUTED_SUGGESTION],
            metadata={"agent": self.kind.value, "misrouted": True},
        )


class EvidenceMixin:
    """
    Retrieval + deduplication for agents that back a passing verdict with
    rule evidence. A verdict without evidence loses `no_evidence_penalty`.
    """

    _retriever: RuleRetriever
    _deduplicator: RuleDeduplicator
    _top_k: int
    _corpus: Optional[str]
    _no_evidence_penalty: int

    def _init_evidence(
        self,
        *,
        retriever: RuleRetriever,
        deduplicator: Optional[RuleDeduplicator],
        top_k: int,
        corpus: Optional[str],
        no_evidence_penalty: int,
    ) -> None:
        self._retriever = retriever
        self._deduplicator = deduplicator or RuleDeduplicator()
        self._top_k = top_k
        self._corpus = corpus
        self._no_evidence_penalty = no_evidence_penalty

    async def _gather_evidence(
        self,
        content: str,
        title: Optional[str] = None,
        *,
        include_examples: bool = False,
    ) -> List[ScoredRule]:
        matches = await self._retriever.retrieve(
            content,
            self._top_k,
            self._corpus,
            title=title,
            include_examples=include_examples,
        )
        return dedupe_scored(self._deduplicator, matches)

    def _apply_evidence(self, score: float, evidence: Sequence[ScoredRule]) -> float:
        if evidence:
            return score
        return score - self._no_evidence_penalty


def dedupe_scored(
    deduplicator: RuleDeduplicator,
    matches: Sequence[ScoredRule],
) -> List[ScoredRule]:
    kept = {id(rule) for rule in deduplicator.deduplicate([m.rule for m in matches])}
    return [match for match in matches if id(match.rule) in kept]


def evidence_metadata(evidence: Sequence[ScoredRule]) -> dict:
    return {
        "retrieval_score": evidence[0].score if evidence else None,
        "matched_rule_ids": [item.rule.id for item in evidence],
    }
