from typing import List

from pydantic import BaseModel, Field, field_validator

from reviewer.app.refinement.schemas.common import (
    STAGE_MODEL_CONFIG,
    ComplianceLevel,
    coerce_compliance,
    coerce_str_list,
)


class GuidelineAssessment(BaseModel):
    guideline_id: str
    complies: bool
    reason: str = ""

    model_config = STAGE_MODEL_CONFIG

    @field_validator("guideline_id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v) if v is not None else v


class TargetedSummaryOutput(BaseModel):
    """
    S3 output: per-rule judgement and the overall tri-state.
    """

    overall_compliance: ComplianceLevel = ComplianceLevel.PARTIALLY_COMPLIANT
    assessment: List[GuidelineAssessment] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    model_config = STAGE_MODEL_CONFIG

    @field_validator("overall_compliance", mode="before")
    @classmethod
    def normalize_compliance(cls, v):
        return coerce_compliance(v)

    @field_validator("suggestions", mode="before")
    @classmethod
    def coerce_suggestions(cls, v):
        return coerce_str_list(v)
