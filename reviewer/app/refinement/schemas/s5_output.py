from typing import List

from pydantic import BaseModel, Field, field_validator

from reviewer.app.refinement.schemas.common import STAGE_MODEL_CONFIG, coerce_str_list


class FinalAssessment(BaseModel):
    verdict: str = ""
    key_points: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    model_config = STAGE_MODEL_CONFIG

    @field_validator("key_points", "suggestions", mode="before")
    @classmethod
    def coerce_lists(cls, v):
        return coerce_str_list(v)


class QualityAssuranceOutput(BaseModel):
    """S5 output: brief, concrete assessment."""

    final_assessment: FinalAssessment

    model_config = STAGE_MODEL_CONFIG
