"""
Agent registry.

Binds each SectionKind to exactly one strategy object. Selection is a
single classify-then-lookup step; there is no string dispatch.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from reviewer.app.agents.base import SectionAgent
from reviewer.app.agents.routing import SectionKind, classify_section


class AgentRegistry:
    def __init__(
        self,
        agents: Mapping[SectionKind, SectionAgent],
        *,
        override: Optional[SectionAgent] = None,
    ) -> None:
        missing = [kind.value for kind in SectionKind if kind not in agents]
        if missing:
            raise ValueError(f"No agent registered for section kinds: {missing}")
        self._agents: Dict[SectionKind, SectionAgent] = dict(agents)
        self._override = override

    def agent_for(self, kind: SectionKind) -> SectionAgent:
        return self._override or self._agents[kind]

    def select(
        self,
        title: str,
        section_title: Optional[str] = None,
    ) -> Tuple[SectionKind, SectionAgent]:
        """
        Classify the subsection once and return the bound agent.

        When an override is set (the refinement chain), it handles every
        kind; the classification is still reported for logging.
        """
        kind = classify_section(title, section_title)
        return kind, self.agent_for(kind)
