from typing import Protocol

from pydantic import BaseModel

from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.result import StageResult


class RefinementStage(Protocol):
    """
    One step of the refinement chain.

    run() must always return a StageResult; model failures are turned
    into the stage's fallback output. fallback() is also used by the
    pipeline if run() raises.
    """

    stage_id: str
    name: str

    async def run(self, context: RefinementContext) -> StageResult:
        ...

    def fallback(self, context: RefinementContext) -> BaseModel:
        ...
