from __future__ import annotations

from typing import List, Mapping, Optional

from reviewer.app.agents.base import EvidenceMixin, KeywordGatedAgent, evidence_metadata
from reviewer.app.agents.routing import SectionKind
from reviewer.app.observability import ActivityLog
from reviewer.app.retrieval.deduplicator import RuleDeduplicator
from reviewer.app.retrieval.retriever import RuleRetriever
from reviewer.app.schemas.verdicts import AgentVerdict


BOARD_COMPOSITION_SUGGESTION = (
    "Governance section should discuss board composition and directors"
)
COMMITTEE_SUGGESTION = "Consider including information about board committees"

PASSING_SCORE = 85


class GovernanceAgent(EvidenceMixin, KeywordGatedAgent):
    kind = SectionKind.GOVERNANCE

    def __init__(
        self,
        *,
        retriever: RuleRetriever,
        deduplicator: Optional[RuleDeduplicator] = None,
        top_k: int = 5,
        corpus: Optional[str] = None,
        no_evidence_penalty: int = 10,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        KeywordGatedAgent.__init__(self, activity_log=activity_log)
        self._init_evidence(
            retriever=retriever,
            deduplicator=deduplicator,
            top_k=top_k,
            corpus=corpus,
            no_evidence_penalty=no_evidence_penalty,
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
        if not self.accepts(title, section_title):
            return self.misrouted(title)

        lowered = (content or "").lower()
        advisories = self.advisories(content)

        if "board" not in lowered or "director" not in lowered:
            return AgentVerdict(
                is_compliant=False,
                score=0,
                suggestions=[BOARD_COMPOSITION_SUGGESTION] + advisories,
                metadata={"agent": self.kind.value},
            )

        evidence = await self._gather_evidence(content, title)
        return AgentVerdict(
            is_compliant=True,
            score=self._apply_evidence(PASSING_SCORE, evidence),
            suggestions=advisories,
            metadata={"agent": self.kind.value, **evidence_metadata(evidence)},
        )

    @staticmethod
    def advisories(content: str) -> List[str]:
        tips: List[str] = []
        if "committee" not in (content or "").lower():
            tips.append(COMMITTEE_SUGGESTION)
        if "\n" not in (content or ""):
            tips.append(
                "Consider breaking governance information into separate "
                "paragraphs for better readability"
            )
        return tips
