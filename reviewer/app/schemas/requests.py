"""
HTTP request bodies that are not domain models themselves.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from reviewer.app.schemas.document import Subsection


_REQUEST_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    alias_generator=to_camel,
    populate_by_name=True,
)


class RefineSubsectionRequest(BaseModel):
    subsection: Subsection
    section_title: Optional[str] = None
    sibling_context: Dict[str, str] = Field(default_factory=dict)
    feedback: List[str] = Field(default_factory=list)

    model_config = _REQUEST_CONFIG


class FeedbackRequest(BaseModel):
    original_text: str = Field(..., min_length=1)
    improved_text: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = _REQUEST_CONFIG


class FeedbackResponse(BaseModel):
    success: bool

    model_config = _REQUEST_CONFIG
