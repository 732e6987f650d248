from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class GeneralReviewOutput(BaseModel):
    """
    JSON verdict requested from the model by the general agent.
    """

    is_compliant: Optional[bool] = None
    critique_points: List[str] = Field(default_factory=list)
    score: Optional[float] = None
    analysis: str = ""

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("critique_points", mode="before")
    @classmethod
    def coerce_points(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v
