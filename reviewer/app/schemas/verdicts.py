"""
Verdict and result models produced by an analysis run.

IMPORTANT:
- A SubsectionVerdict score is always within [0, 100].
- Verdicts are never mutated; a re-analysis produces new objects.
- A verdict produced by an internal failure has exactly the same shape
  as a content-based one; only its suggestion text differs.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    alias_generator=to_camel,
    populate_by_name=True,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 rounding away from zero."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def clamp_score(value: float) -> int:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return 0
    return max(0, min(100, round_half_up(value)))


# ----------------------------------------------------------------------
# Agent output
# ----------------------------------------------------------------------
class AgentVerdict(BaseModel):
    """
    Structured verdict returned by a section agent.

    Scores are clamped into [0, 100] on construction so that model
    output outside the range can never leak into a SubsectionVerdict.
    """

    is_compliant: bool
    score: int
    suggestions: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = _MODEL_CONFIG

    @field_validator("score", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> int:
        try:
            return clamp_score(float(v))
        except (TypeError, ValueError):
            return 0


# ----------------------------------------------------------------------
# Subsection / Section / Document results
# ----------------------------------------------------------------------
class SubsectionVerdict(BaseModel):
    subsection_id: str
    title: str
    is_compliant: bool
    score: int = Field(..., ge=0, le=100)
    suggestions: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = _MODEL_CONFIG


class SectionResult(BaseModel):
    section_id: str
    title: str
    is_compliant: bool
    score: int = Field(..., ge=0, le=100)
    suggestions: List[str] = Field(default_factory=list)
    subsection_results: List[SubsectionVerdict] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class DocumentAnalysisResult(BaseModel):
    document_id: str
    sections: List[SectionResult] = Field(default_factory=list)
    overall_compliance: bool
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    model_config = _MODEL_CONFIG


class ProgressEvent(BaseModel):
    """Transient progress report; streamed, never persisted."""

    progress: int = Field(..., ge=0, le=100)
    stage: str
    current_section_id: Optional[str] = None

    model_config = _MODEL_CONFIG
