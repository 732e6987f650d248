from pydantic import BaseModel, ConfigDict, Field


class PromptFragment(BaseModel):
    """
    Immutable task prompt for one model-backed step.

    `family` groups prompts that ship together (e.g. the refinement
    chain), `key` names the step within the family.
    """

    family: str
    version: str
    key: str
    text: str = Field(..., min_length=1)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    @property
    def prompt_id(self) -> str:
        return f"{self.family}:{self.version}:{self.key}"
