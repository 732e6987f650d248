from typing import List

from pydantic import BaseModel, Field, field_validator

from reviewer.app.refinement.schemas.common import (
    STAGE_MODEL_CONFIG,
    ComplianceLevel,
    coerce_compliance,
    coerce_str_list,
)


class RefinedAssessment(BaseModel):
    overall_compliance: ComplianceLevel = ComplianceLevel.PARTIALLY_COMPLIANT
    key_points: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    model_config = STAGE_MODEL_CONFIG

    @field_validator("overall_compliance", mode="before")
    @classmethod
    def normalize_compliance(cls, v):
        return coerce_compliance(v)

    @field_validator("key_points", "suggestions", mode="before")
    @classmethod
    def coerce_lists(cls, v):
        return coerce_str_list(v)


class FeedbackIntegrationOutput(BaseModel):
    """S4 output: the assessment after applying historical feedback."""

    refined_assessment: RefinedAssessment

    model_config = STAGE_MODEL_CONFIG
