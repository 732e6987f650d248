from typing import List

from pydantic import BaseModel, Field, field_validator

from reviewer.app.refinement.schemas.common import (
    STAGE_MODEL_CONFIG,
    ComplianceLevel,
    coerce_compliance,
    coerce_str_list,
)


class IterativeRefinementOutput(BaseModel):
    """
    S7 output: the single conversational verdict shown to the author.
    """

    final_response: str = ""
    compliance: ComplianceLevel = ComplianceLevel.PARTIALLY_COMPLIANT
    key_points: List[str] = Field(default_factory=list)
    explanation: str = ""

    model_config = STAGE_MODEL_CONFIG

    @field_validator("compliance", mode="before")
    @classmethod
    def normalize_compliance(cls, v):
        return coerce_compliance(v)

    @field_validator("key_points", mode="before")
    @classmethod
    def coerce_points(cls, v):
        return coerce_str_list(v)
