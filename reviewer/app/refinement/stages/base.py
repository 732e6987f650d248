from __future__ import annotations

import json
from typing import List, Optional, Type

from pydantic import BaseModel

from reviewer.app.llm.executor import StructuredLLMExecutor
from reviewer.app.llm.prompt_fragment import PromptFragment
from reviewer.app.refinement.context import RefinementContext
from reviewer.app.refinement.result import StageExecutionError, StageResult


def render_output(label: str, output: Optional[BaseModel]) -> str:
    if output is None:
        return f"{label}: (not available)"
    payload = json.dumps(
        output.model_dump(mode="json"),
        ensure_ascii=False,
        sort_keys=True,
        indent=2,
    )
    return f"{label}:\n{payload}"


class ModelBackedStage:
    """
    Base for stages that make exactly one structured model call.

    Subclasses provide `output_schema`, `fallback()` and optionally
    `context_blocks()` / `postprocess()`.
    """

    stage_id: str
    name: str
    output_schema: Type[BaseModel]

    def __init__(
        self,
        *,
        executor: StructuredLLMExecutor,
        prompt: PromptFragment,
    ) -> None:
        self._executor = executor
        self._prompt = prompt

    async def run(self, context: RefinementContext) -> StageResult:
        execution = await self._executor.execute(
            prompt=self._prompt,
            output_schema=self.output_schema,
            input_text=self.input_text(context),
            context_blocks=self.context_blocks(context),
            run_id=context.run_id,
            emitter=context.emitter,
        )

        # ----------------------------------------------------------
        # Execution failure: conservative fallback, chain continues
        # ----------------------------------------------------------
        if not execution.success:
            return StageResult(
                stage_id=self.stage_id,
                used_fallback=True,
                output=self.fallback(context),
                execution_error=StageExecutionError(
                    failure_type=execution.failure_type or "unexpected_error",
                    raw_error=execution.raw_error,
                    prompt_id=execution.prompt_id,
                ),
            )

        return StageResult(
            stage_id=self.stage_id,
            output=self.postprocess(context, execution.output),
        )

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def input_text(self, context: RefinementContext) -> str:
        return f"SECTION TITLE: {context.title}\n\n{context.content}"

    def context_blocks(self, context: RefinementContext) -> List[str]:
        return [
            render_output(f"{stage_id} OUTPUT", output)
            for stage_id, output in context.prior_outputs().items()
        ]

    def postprocess(self, context: RefinementContext, output: BaseModel) -> BaseModel:
        return output

    def fallback(self, context: RefinementContext) -> BaseModel:
        raise NotImplementedError
