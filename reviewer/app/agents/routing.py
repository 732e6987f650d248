"""
Section routing.

A subsection is classified exactly once into a SectionKind and handed
to the strategy bound to that kind. Anything not matched falls back to
the general agent.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple


class SectionKind(str, Enum):
    RISK = "risk"
    FINANCIAL = "financial"
    GOVERNANCE = "governance"
    GENERAL = "general"


# Checked in order; the first kind with a keyword hit wins
ROUTING_KEYWORDS: Tuple[Tuple[SectionKind, Tuple[str, ...]], ...] = (
    (SectionKind.RISK, ("risk",)),
    (SectionKind.FINANCIAL, ("financial", "accounting", "revenue")),
    (SectionKind.GOVERNANCE, ("governance", "board", "management")),
)

KIND_KEYWORDS: Dict[SectionKind, Tuple[str, ...]] = dict(ROUTING_KEYWORDS)


def routing_text(title: str, section_title: Optional[str] = None) -> str:
    return f"{section_title or ''} {title or ''}".lower()


def classify_section(title: str, section_title: Optional[str] = None) -> SectionKind:
    text = routing_text(title, section_title)
    for kind, keywords in ROUTING_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return kind
    return SectionKind.GENERAL


class SubsectionRole(str, Enum):
    WARNING = "warning"
    INTRODUCTORY = "introductory"
    DETAILED_RISK = "detailed_risk"
    DETAILED_FINANCIAL = "detailed_financial"
    GENERAL_DETAIL = "general_detail"


def classify_subsection_role(title: str, subsection_id: Optional[str] = None) -> SubsectionRole:
    """
    Structural role of a subsection, from its title and id prefix.

    Ids follow the template convention `sec<N>_<slug>`: section 4 holds
    risk factors and section 3 the financial statements.
    """
    lower_title = (title or "").lower()
    lower_id = (subsection_id or "").lower()

    if "warning" in lower_title:
        return SubsectionRole.WARNING
    if any(word in lower_title for word in ("overview", "introduction", "summary")):
        return SubsectionRole.INTRODUCTORY
    if lower_id.startswith("sec4_"):
        return SubsectionRole.DETAILED_RISK
    if lower_id.startswith("sec3_") and ("finan" in lower_id or "statements" in lower_id):
        return SubsectionRole.DETAILED_FINANCIAL
    return SubsectionRole.GENERAL_DETAIL
