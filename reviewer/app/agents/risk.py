from __future__ import annotations

import re
from typing import Mapping, Optional

from reviewer.app.agents.base import KeywordGatedAgent
from reviewer.app.agents.routing import SectionKind
from reviewer.app.checks.placeholder_detector import PlaceholderDetector
from reviewer.app.observability import ActivityLog
from reviewer.app.schemas.verdicts import AgentVerdict


_MODAL = re.compile(r"\b(may|could|can)\b", re.IGNORECASE)
_CONSEQUENCE = re.compile(r"\b(impact|affect|result)\w*", re.IGNORECASE)

FORWARD_LOOKING_SCORE = 85
PLACEHOLDER_SCORE = 40


class RiskAgent(KeywordGatedAgent):
    """
    Risk factor checker.

    Incomplete risk prose is rejected. Prose that says what may happen
    and what it would affect is accepted. Anything else falls through to
    the configured default: accepted at `default_score` when lenient,
    otherwise rejected with a request for forward-looking framing.
    """

    kind = SectionKind.RISK

    def __init__(
        self,
        *,
        placeholder_detector: Optional[PlaceholderDetector] = None,
        lenient_default: bool = True,
        default_score: int = 75,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        super().__init__(activity_log=activity_log)
        self._placeholders = placeholder_detector or PlaceholderDetector()
        self._lenient_default = lenient_default
        self._default_score = default_score

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

        found = self._placeholders.detect(content)
        if found:
            return AgentVerdict(
                is_compliant=False,
                score=PLACEHOLDER_SCORE,
                suggestions=[
                    "Risk section contains placeholder text or incomplete information"
                ],
                metadata={"agent": self.kind.value, "placeholders": found},
            )

        if self.has_risk_and_impact(content):
            return AgentVerdict(
                is_compliant=True,
                score=FORWARD_LOOKING_SCORE,
                metadata={"agent": self.kind.value, "rule": "forward_looking"},
            )

        if self._lenient_default:
            return AgentVerdict(
                is_compliant=True,
                score=self._default_score,
                metadata={"agent": self.kind.value, "rule": "lenient_default"},
            )

        return AgentVerdict(
            is_compliant=False,
            score=self._default_score,
            suggestions=[
                "Describe what could happen and how it would affect the "
                "business, using forward-looking language"
            ],
            metadata={"agent": self.kind.value, "rule": "strict_default"},
        )

    @staticmethod
    def has_risk_and_impact(content: str) -> bool:
        return bool(_MODAL.search(content or "")) and bool(
            _CONSEQUENCE.search(content or "")
        )
