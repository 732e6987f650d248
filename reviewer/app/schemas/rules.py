from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RuleCategory(str, Enum):
    FINANCIAL = "financial"
    GOVERNANCE = "governance"
    DISCLOSURE = "disclosure"
    COMPLIANCE = "compliance"
    GENERAL = "general"


class RuleSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Identifiers minted for rules extracted from raw passage text
SYNTHETIC_RULE_PREFIX = "extracted-"


class Rule(BaseModel):
    """
    A listing rule as returned by the retriever.

    Rules are retrieved per query and are not owned by any Document.
    """

    id: str
    title: str
    description: str
    category: RuleCategory = RuleCategory.GENERAL
    severity: RuleSeverity = RuleSeverity.MEDIUM
    source_document: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @property
    def is_synthetic(self) -> bool:
        return self.id.startswith(SYNTHETIC_RULE_PREFIX)


class ScoredRule(BaseModel):
    """
    A retrieved rule with its similarity score and the passage text it
    was matched on.
    """

    rule: Rule
    score: float = Field(..., ge=0.0, le=1.0)
    evidence_text: str = ""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )
