from typing import List

from pydantic import BaseModel, Field, field_validator

from reviewer.app.refinement.schemas.common import STAGE_MODEL_CONFIG, coerce_str_list


class RelevanceCheck(BaseModel):
    is_relevant: bool = True
    adjustments: List[str] = Field(default_factory=list)
    flagged_guideline_ids: List[str] = Field(default_factory=list)

    model_config = STAGE_MODEL_CONFIG

    @field_validator("adjustments", "flagged_guideline_ids", mode="before")
    @classmethod
    def coerce_lists(cls, v):
        if isinstance(v, list):
            return [str(item) for item in v if item is not None]
        return coerce_str_list(v)


class ContextualRelevanceOutput(BaseModel):
    """S6 output: whether cited rules apply to this subsection."""

    relevance_check: RelevanceCheck

    model_config = STAGE_MODEL_CONFIG
