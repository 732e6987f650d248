from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Literal, Optional, Type

from azure.core.exceptions import ServiceResponseTimeoutError
from openai import APITimeoutError
from pydantic import BaseModel, ConfigDict

from reviewer.app.errors import ConfigurationError
from reviewer.app.events import (
    AnalysisEvent,
    AnalysisEventType,
    AnalysisEventEmitter,
    NullEventEmitter,
)
from reviewer.app.llm.backend import LanguageModelBackend
from reviewer.app.llm.parsing import parse_model_output
from reviewer.app.llm.prompt_fragment import PromptFragment


# ----------------------------------------------------------------------
# Structured Execution Result
# ----------------------------------------------------------------------

class StructuredLLMExecutionResult(BaseModel):
    """
    Normalized outcome of one structured model call.

    Produced for every call, successful or not; execute() never raises
    for backend or parsing failures. A ConfigurationError from the
    backend is not a call failure and propagates.
    """
    success: bool
    output: Optional[BaseModel] = None

    failure_type: Optional[
        Literal[
            "timeout",
            "schema_violation",
            "unexpected_error",
        ]
    ] = None
    raw_error: Optional[str] = None
    raw_text: Optional[str] = None

    model_deployment: str
    prompt_id: str

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


# ----------------------------------------------------------------------
# Executor
# ----------------------------------------------------------------------

class StructuredLLMExecutor:
    """
    Runs a prompt against a LanguageModelBackend and parses the reply
    into `output_schema`.

    Prompt assembly:
      1. System layer: base system text + task prompt
      2. Data layer: the text under analysis, fenced
      3. Optional context layer: prior outputs, sibling excerpts, etc.
    """

    def __init__(
        self,
        *,
        backend: LanguageModelBackend,
        base_system_text: str = "",
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._backend = backend
        self._base_system_text = base_system_text.strip()
        self._timeout_seconds = timeout_seconds

    @property
    def model_deployment(self) -> str:
        return getattr(self._backend, "deployment", "unknown")

    async def execute(
        self,
        *,
        prompt: PromptFragment,
        output_schema: Type[BaseModel],
        input_text: str,
        context_blocks: Optional[List[str]] = None,
        run_id: Optional[str] = None,
        emitter: Optional[AnalysisEventEmitter] = None,
    ) -> StructuredLLMExecutionResult:
        emitter = emitter or NullEventEmitter()
        prompt_id = prompt.prompt_id

        if run_id is not None:
            await emitter.emit(
                AnalysisEvent(
                    run_id=run_id,
                    event_type=AnalysisEventType.LLM_EXECUTION_STARTED,
                    details={
                        "prompt_id": prompt_id,
                        "model_deployment": self.model_deployment,
                    },
                )
            )

        system_prompt = (
            f"{self._base_system_text}\n\n{prompt.text}"
            if self._base_system_text
            else prompt.text
        )

        messages: List[Dict[str, str]] = [
            {
                "role": "user",
                "content": (
                    "--- BEGIN TEXT UNDER ANALYSIS ---\n"
                    f"{input_text}\n"
                    "--- END TEXT UNDER ANALYSIS ---"
                ),
            }
        ]
        for block in context_blocks or []:
            messages.append({"role": "user", "content": block})

        result: StructuredLLMExecutionResult
        try:
            call = self._backend.complete(
                system_prompt=system_prompt,
                messages=messages,
                json_mode=True,
            )
            if self._timeout_seconds is not None:
                raw_text = await asyncio.wait_for(call, timeout=self._timeout_seconds)
            else:
                raw_text = await call

            parsed = parse_model_output(raw_text, output_schema)
            if parsed.ok:
                result = self._result(
                    success=True,
                    output=parsed.value,
                    raw_text=raw_text,
                    prompt_id=prompt_id,
                )
            else:
                result = self._result(
                    success=False,
                    failure_type="schema_violation",
                    raw_error=parsed.error,
                    raw_text=raw_text,
                    prompt_id=prompt_id,
                )

        except ConfigurationError:
            raise

        except (asyncio.TimeoutError, APITimeoutError, ServiceResponseTimeoutError) as exc:
            result = self._result(
                success=False,
                failure_type="timeout",
                raw_error=str(exc) or "Model call timed out",
                prompt_id=prompt_id,
            )

        except Exception as exc:
            result = self._result(
                success=False,
                failure_type="unexpected_error",
                raw_error=str(exc) or exc.__class__.__name__,
                prompt_id=prompt_id,
            )

        if run_id is not None:
            await emitter.emit(
                AnalysisEvent(
                    run_id=run_id,
                    event_type=AnalysisEventType.LLM_EXECUTION_COMPLETED,
                    details={
                        "prompt_id": prompt_id,
                        "success": result.success,
                        "failure_type": result.failure_type,
                    },
                )
            )

        return result

    def _result(self, *, prompt_id: str, **fields: Any) -> StructuredLLMExecutionResult:
        return StructuredLLMExecutionResult(
            model_deployment=self.model_deployment,
            prompt_id=prompt_id,
            **fields,
        )
