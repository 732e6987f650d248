from typing import List, Literal

from pydantic import BaseModel, Field, field_validator

from reviewer.app.refinement.schemas.common import STAGE_MODEL_CONFIG, coerce_str_list


ContentLength = Literal["brief", "medium", "detailed"]


class ContextExtractionOutput(BaseModel):
    """
    S1 output: what the subsection is for and what it actually states.
    """

    section_purpose: str = ""
    key_requirements: List[str] = Field(default_factory=list)
    section_type: str = "general"
    content_length: ContentLength = "medium"
    document_context: str = ""

    model_config = STAGE_MODEL_CONFIG

    @field_validator("key_requirements", mode="before")
    @classmethod
    def coerce_requirements(cls, v):
        return coerce_str_list(v)

    @field_validator("content_length", mode="before")
    @classmethod
    def normalize_length(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in {"brief", "medium", "detailed"}:
                return "medium"
        return v
