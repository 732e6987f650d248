"""
Input document model.

A Document is created by the caller before analysis and is immutable for
the duration of a run. Sections carry no text of their own; subsections
are the unit of retrieval and verdict.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    alias_generator=to_camel,
    populate_by_name=True,
)


class Subsection(BaseModel):
    id: str = Field(..., min_length=1)
    title: str
    content: str = ""

    model_config = _MODEL_CONFIG


class Section(BaseModel):
    id: str = Field(..., min_length=1)
    title: str
    subsections: List[Subsection] = Field(default_factory=list)
    status: Optional[str] = None

    model_config = _MODEL_CONFIG

    def sibling_context(self, subsection: Subsection) -> dict:
        """
        Title to content map of every other subsection in this section.
        """
        return {
            other.title: other.content
            for other in self.subsections
            if other.id != subsection.id
        }


class Document(BaseModel):
    id: str = Field(..., min_length=1)
    sections: List[Section] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    @property
    def subsection_count(self) -> int:
        return sum(len(section.subsections) for section in self.sections)
