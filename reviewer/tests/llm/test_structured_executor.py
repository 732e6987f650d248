import asyncio

import anyio
import pytest
from pydantic import BaseModel

from reviewer.app.errors import ConfigurationError
from reviewer.app.events.models import AnalysisEventType
from reviewer.app.llm.backend import DisabledLanguageModelBackend
from reviewer.app.llm.executor import StructuredLLMExecutor
from reviewer.tests.fakes import ListEmitter, ScriptedLanguageModel
from reviewer.tests.helpers import make_test_prompt


class Output(BaseModel):
    answer: str


class SlowModel:
    deployment = "slow-model"

    async def complete(self, *, system_prompt, messages, json_mode=True):
        await asyncio.sleep(5)
        return '{"answer": "late"}'


def test_prompt_layers_are_assembled_in_order():
    model = ScriptedLanguageModel([{"answer": "yes"}])
    executor = StructuredLLMExecutor(backend=model, base_system_text="BASE RULES")

    result = anyio.run(
        lambda: executor.execute(
            prompt=make_test_prompt("S1"),
            output_schema=Output,
            input_text="Subsection text",
            context_blocks=["CONTEXT ONE", "CONTEXT TWO"],
        )
    )

    assert result.success is True
    assert result.output == Output(answer="yes")
    assert result.model_deployment == "scripted-model"
    assert result.prompt_id == "TEST:0.0:S1"

    call = model.calls[0]
    assert call["system_prompt"] == "BASE RULES\n\nTEST PROMPT FOR S1"
    contents = [m["content"] for m in call["messages"]]
    assert "Subsection text" in contents[0]
    assert contents[1:] == ["CONTEXT ONE", "CONTEXT TWO"]


def test_schema_violation_is_classified():
    executor = StructuredLLMExecutor(backend=ScriptedLanguageModel(['{"other": 1}']))

    result = anyio.run(
        lambda: executor.execute(
            prompt=make_test_prompt("S1"), output_schema=Output, input_text="x"
        )
    )

    assert result.success is False
    assert result.failure_type == "schema_violation"
    assert result.raw_text == '{"other": 1}'


def test_timeout_is_classified():
    executor = StructuredLLMExecutor(backend=SlowModel(), timeout_seconds=0.01)

    result = anyio.run(
        lambda: executor.execute(
            prompt=make_test_prompt("S1"), output_schema=Output, input_text="x"
        )
    )

    assert result.success is False
    assert result.failure_type == "timeout"
    assert result.model_deployment == "slow-model"


def test_backend_exception_never_escapes():
    executor = StructuredLLMExecutor(
        backend=ScriptedLanguageModel([RuntimeError("boom")])
    )

    result = anyio.run(
        lambda: executor.execute(
            prompt=make_test_prompt("S1"), output_schema=Output, input_text="x"
        )
    )

    assert result.failure_type == "unexpected_error"
    assert result.raw_error == "boom"


def test_disabled_backend_configuration_error_propagates():
    executor = StructuredLLMExecutor(backend=DisabledLanguageModelBackend())

    with pytest.raises(ConfigurationError, match="MODEL_PROVIDER"):
        anyio.run(
            lambda: executor.execute(
                prompt=make_test_prompt("S1"), output_schema=Output, input_text="x"
            )
        )


def test_execution_events_only_with_run_id():
    emitter = ListEmitter()
    executor = StructuredLLMExecutor(
        backend=ScriptedLanguageModel([{"answer": "a"}, {"answer": "b"}])
    )

    async def run():
        await executor.execute(
            prompt=make_test_prompt("S1"),
            output_schema=Output,
            input_text="x",
            emitter=emitter,
        )
        await executor.execute(
            prompt=make_test_prompt("S2"),
            output_schema=Output,
            input_text="x",
            run_id="run-1",
            emitter=emitter,
        )

    anyio.run(run)

    assert [e.event_type for e in emitter.events] == [
        AnalysisEventType.LLM_EXECUTION_STARTED,
        AnalysisEventType.LLM_EXECUTION_COMPLETED,
    ]
    assert emitter.events[1].details == {
        "prompt_id": "TEST:0.0:S2",
        "success": True,
        "failure_type": None,
    }


def test_managed_identity_backend_without_api_keys(monkeypatch):
    """
    Guarantees:
    - The Azure chat backend can be constructed with Entra ID credentials
    - No API key is required at initialization time
    """
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("AZURE_OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("AZURE_CLIENT_SECRET", raising=False)

    from reviewer.app.llm.backend import AzureOpenAIChatBackend

    backend = AzureOpenAIChatBackend(
        endpoint="https://example.openai.azure.com",
        deployment="dummy-deployment",
        api_version="2024-06-01",
    )

    assert backend.deployment == "dummy-deployment"


def test_api_key_embedding_backend():
    from reviewer.app.retrieval.backends import AzureOpenAIEmbeddingBackend

    backend = AzureOpenAIEmbeddingBackend(
        endpoint="https://example.openai.azure.com",
        deployment="embeddings",
        api_version="2024-06-01",
        api_key="test-key",
    )

    assert backend is not None
