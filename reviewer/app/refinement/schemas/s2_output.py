from typing import List

from pydantic import BaseModel, Field, field_validator

from reviewer.app.refinement.schemas.common import STAGE_MODEL_CONFIG


class RelevantGuideline(BaseModel):
    id: str
    relevance_score: int = Field(0, ge=0, le=100)
    reason: str = ""

    model_config = STAGE_MODEL_CONFIG

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v) if v is not None else v

    @field_validator("relevance_score", mode="before")
    @classmethod
    def clamp_relevance(cls, v):
        try:
            return max(0, min(100, int(round(float(v)))))
        except (TypeError, ValueError):
            return 0


class RuleFilteringOutput(BaseModel):
    """
    S2 output: the retained rules, each with a 0-100 relevance score.
    """

    relevant_guidelines: List[RelevantGuideline] = Field(default_factory=list)

    model_config = STAGE_MODEL_CONFIG
