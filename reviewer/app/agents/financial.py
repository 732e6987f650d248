from __future__ import annotations

import re
from typing import List, Mapping, Optional

from reviewer.app.agents.base import EvidenceMixin, KeywordGatedAgent, evidence_metadata
from reviewer.app.agents.routing import SectionKind
from reviewer.app.observability import ActivityLog
from reviewer.app.retrieval.deduplicator import RuleDeduplicator
from reviewer.app.retrieval.retriever import RuleRetriever
from reviewer.app.schemas.verdicts import AgentVerdict


_DIGIT = re.compile(r"\d")
_METRIC_TERMS = ("revenue", "expense", "profit")

PASSING_SCORE = 85


class FinancialAgent(EvidenceMixin, KeywordGatedAgent):
    kind = SectionKind.FINANCIAL

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

        problems = self.content_problems(content)
        advisories = self.advisories(content)

        if problems:
            self._log.info("financial_quality_failed", title=title, problems=len(problems))
            return AgentVerdict(
                is_compliant=False,
                score=0,
                suggestions=problems + advisories,
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
    def content_problems(content: str) -> List[str]:
        problems: List[str] = []
        lowered = (content or "").lower()
        if not _DIGIT.search(lowered):
            problems.append("Financial section should include numerical data")
        if not any(term in lowered for term in _METRIC_TERMS):
            problems.append(
                "Financial section should discuss key financial metrics "
                "such as revenue, expenses or profit"
            )
        return problems

    @staticmethod
    def advisories(content: str) -> List[str]:
        if "\n" not in (content or ""):
            return [
                "Consider breaking financial data into separate paragraphs "
                "for better readability"
            ]
        return []
