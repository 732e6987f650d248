import asyncio

import pytest

from reviewer.app.agents.general import GeneralAgent
from reviewer.app.agents.registry import AgentRegistry
from reviewer.app.agents.routing import SectionKind
from reviewer.app.coordinator.orchestrator import (
    AGENT_ERROR_PREFIX,
    PLACEHOLDER_SUGGESTION_PREFIX,
    AnalysisOrchestrator,
)
from reviewer.app.errors import AnalysisCancelledError, ConfigurationError
from reviewer.app.events.models import AnalysisEventType
from reviewer.app.llm.backend import DisabledLanguageModelBackend
from reviewer.app.llm.executor import StructuredLLMExecutor
from reviewer.app.schemas.document import Document
from reviewer.app.schemas.verdicts import AgentVerdict
from reviewer.tests.fakes import (
    ListActivityLog,
    ListEmitter,
    RaisingRetriever,
    ScriptedLanguageModel,
    StubRetriever,
)
from reviewer.tests.helpers import make_test_prompt

pytestmark = pytest.mark.anyio


class RecordingAgent:
    """Returns a fixed verdict and records every call."""

    def __init__(self, score=80, is_compliant=True, suggestions=(), error=None, delay=0.0):
        self.score = score
        self.is_compliant = is_compliant
        self.suggestions = list(suggestions)
        self.error = error
        self.delay = delay
        self.calls = []

    async def analyze(self, title, content, sibling_context=None, *, subsection_id=None, section_title=None):
        self.calls.append(
            {
                "title": title,
                "subsection_id": subsection_id,
                "section_title": section_title,
                "sibling_context": sibling_context,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AgentVerdict(
            is_compliant=self.is_compliant,
            score=self.score,
            suggestions=self.suggestions,
            metadata={"agent": "recording"},
        )


def make_registry(**overrides):
    agents = {kind: RecordingAgent() for kind in SectionKind}
    for name, agent in overrides.items():
        agents[SectionKind(name)] = agent
    return AgentRegistry(agents), agents


def make_document(*sections):
    return Document.model_validate(
        {
            "id": "doc-1",
            "sections": [
                {
                    "id": section_id,
                    "title": title,
                    "subsections": [
                        {"id": sub_id, "title": sub_title, "content": content}
                        for sub_id, sub_title, content in subsections
                    ],
                }
                for section_id, title, subsections in sections
            ],
        }
    )


FOUR_SUBSECTIONS = make_document(
    (
        "sec2",
        "Offer Details",
        [
            ("sec2_a", "A", "The offer opens on 1 March."),
            ("sec2_b", "B", "The offer closes on 31 March."),
            ("sec2_c", "C", "Shares are priced at 1.00."),
            ("sec2_d", "D", "Applications are made online."),
        ],
    )
)


# ----------------------------------------------------------------------
# Ordering / aggregation
# ----------------------------------------------------------------------

async def test_sections_and_subsections_keep_input_order():
    registry, agents = make_registry()
    document = make_document(
        ("sec1", "Overview", [("sec1_a", "A", "First."), ("sec1_b", "B", "Second.")]),
        ("sec2", "Offer", [("sec2_a", "C", "Third.")]),
    )

    result = await AnalysisOrchestrator(registry=registry).analyze(document)

    assert [s.section_id for s in result.sections] == ["sec1", "sec2"]
    assert [v.subsection_id for v in result.sections[0].subsection_results] == ["sec1_a", "sec1_b"]
    assert [c["title"] for c in agents[SectionKind.GENERAL].calls] == ["A", "B", "C"]


async def test_section_score_is_rounded_mean_and_compliance_is_conjunction():
    registry, _ = make_registry(
        risk=RecordingAgent(score=75, is_compliant=False, suggestions=["Add a risk warning"]),
        general=RecordingAgent(score=90),
    )
    document = make_document(
        (
            "sec4",
            "Key Information",
            [
                ("sec4_a", "Operating Risks", "Competition may reduce margins."),
                ("sec4_b", "Dividend Policy", "No dividend is planned."),
            ],
        ),
        ("sec5", "Offer", [("sec5_a", "Timetable", "Opens in March.")]),
    )

    result = await AnalysisOrchestrator(registry=registry).analyze(document)

    first, second = result.sections
    assert first.score == 83  # (75 + 90) / 2 = 82.5
    assert first.is_compliant is False
    assert first.suggestions == ["[Operating Risks] Add a risk warning"]
    assert second.is_compliant is True
    assert result.overall_compliance is False


async def test_empty_section_scores_zero_and_is_compliant():
    registry, _ = make_registry()
    document = make_document(("sec1", "Empty", []))

    result = await AnalysisOrchestrator(registry=registry).analyze(document)

    assert result.sections[0].score == 0
    assert result.sections[0].is_compliant is True
    assert result.overall_compliance is True


async def test_agent_receives_sibling_context_and_section_title():
    registry, agents = make_registry()
    document = make_document(
        ("sec2", "Offer", [("sec2_a", "A", "First."), ("sec2_b", "B", "Second.")]),
    )

    await AnalysisOrchestrator(registry=registry).analyze(document)

    call = agents[SectionKind.GENERAL].calls[0]
    assert call["sibling_context"] == {"B": "Second."}
    assert call["section_title"] == "Offer"
    assert call["subsection_id"] == "sec2_a"


# ----------------------------------------------------------------------
# Placeholders / failures
# ----------------------------------------------------------------------

async def test_placeholder_subsection_scores_zero_without_agent_call():
    registry, agents = make_registry()
    document = make_document(
        ("sec3", "Results", [("sec3_a", "Growth", "Revenue grew [INSERT PERCENT]% this year.")]),
    )

    result = await AnalysisOrchestrator(registry=registry).analyze(document)

    verdict = result.sections[0].subsection_results[0]
    assert verdict.score == 0
    assert verdict.is_compliant is False
    assert verdict.suggestions[0].startswith(PLACEHOLDER_SUGGESTION_PREFIX)
    assert "INSERT PERCENT" in verdict.suggestions[0]
    assert all(not agent.calls for agent in agents.values())


async def test_retriever_failure_is_contained_to_its_subsection():
    general = GeneralAgent(
        retriever=RaisingRetriever(RuntimeError("index offline")),
        executor=StructuredLLMExecutor(backend=ScriptedLanguageModel()),
        prompt=make_test_prompt("review"),
    )
    registry, agents = make_registry(general=general, risk=RecordingAgent(score=70))
    log = ListActivityLog()
    document = make_document(
        (
            "sec4",
            "Offer",
            [
                ("sec4_a", "Use of Funds", "Funds open new stores."),
                ("sec4_b", "Key Risks", "Competition may reduce margins."),
            ],
        ),
    )

    result = await AnalysisOrchestrator(registry=registry, activity_log=log).analyze(document)

    failed, ok = result.sections[0].subsection_results
    assert failed.score == 0
    assert failed.error == "index offline"
    assert failed.suggestions == [f"{AGENT_ERROR_PREFIX}: index offline"]
    assert ok.score == 70
    assert len(agents[SectionKind.RISK].calls) == 1
    assert "subsection_analysis_failed" in log.events()


async def test_configuration_error_aborts_the_run():
    registry, _ = make_registry(general=RecordingAgent(error=ConfigurationError("no backend")))

    with pytest.raises(ConfigurationError):
        await AnalysisOrchestrator(registry=registry).analyze(FOUR_SUBSECTIONS)


async def test_disabled_model_provider_aborts_the_run():
    general = GeneralAgent(
        retriever=StubRetriever(),
        executor=StructuredLLMExecutor(backend=DisabledLanguageModelBackend()),
        prompt=make_test_prompt("review"),
    )
    registry, _ = make_registry(general=general)

    with pytest.raises(ConfigurationError, match="MODEL_PROVIDER"):
        await AnalysisOrchestrator(registry=registry).analyze(FOUR_SUBSECTIONS)


# ----------------------------------------------------------------------
# Progress
# ----------------------------------------------------------------------

async def test_progress_is_reported_per_subsection():
    registry, _ = make_registry()
    seen = []
    emitter = ListEmitter()

    await AnalysisOrchestrator(registry=registry).analyze(
        FOUR_SUBSECTIONS,
        lambda progress, stage, section_id: seen.append((progress, stage, section_id)),
        emitter=emitter,
    )

    assert [p for p, _, _ in seen] == [25, 50, 75, 100]
    assert seen[0] == (25, "Analyzing A", "sec2")

    events = emitter.of_type(AnalysisEventType.PROGRESS)
    assert [e.details["progress"] for e in events] == [25, 50, 75, 100]
    assert events[0].details["currentSectionId"] == "sec2"
    assert len(emitter.of_type(AnalysisEventType.SECTION_COMPLETE)) == 4


async def test_async_progress_callback_is_awaited_and_errors_are_ignored():
    registry, _ = make_registry()
    seen = []

    async def on_progress(progress, stage, section_id):
        seen.append(progress)
        if progress == 50:
            raise RuntimeError("ui went away")

    result = await AnalysisOrchestrator(registry=registry).analyze(FOUR_SUBSECTIONS, on_progress)

    assert seen == [25, 50, 75, 100]
    assert len(result.sections[0].subsection_results) == 4


# ----------------------------------------------------------------------
# Cancellation
# ----------------------------------------------------------------------

async def test_cancel_before_start_raises():
    registry, agents = make_registry()
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(AnalysisCancelledError):
        await AnalysisOrchestrator(registry=registry).analyze(FOUR_SUBSECTIONS, cancel_event=cancel)

    assert not agents[SectionKind.GENERAL].calls


async def test_cancel_during_slow_agent_raises():
    slow = RecordingAgent(delay=5.0)
    registry, _ = make_registry(general=slow)
    cancel = asyncio.Event()

    async def cancel_soon():
        await asyncio.sleep(0.01)
        cancel.set()

    canceller = asyncio.ensure_future(cancel_soon())
    with pytest.raises(AnalysisCancelledError):
        await AnalysisOrchestrator(registry=registry).analyze(FOUR_SUBSECTIONS, cancel_event=cancel)
    await canceller

    assert len(slow.calls) == 1


# ----------------------------------------------------------------------
# Streaming
# ----------------------------------------------------------------------

async def test_stream_analysis_ends_with_result():
    registry, _ = make_registry()
    emitter = ListEmitter()

    await AnalysisOrchestrator(registry=registry).stream_analysis(
        FOUR_SUBSECTIONS, emitter, run_id="run-1"
    )

    last = emitter.events[-1]
    assert last.event_type == AnalysisEventType.RESULT
    assert last.details["result"]["documentId"] == "doc-1"
    assert not emitter.of_type(AnalysisEventType.ERROR)


async def test_stream_analysis_reports_fatal_error_then_raises():
    registry, _ = make_registry(general=RecordingAgent(error=ConfigurationError("no backend")))
    emitter = ListEmitter()

    with pytest.raises(ConfigurationError):
        await AnalysisOrchestrator(registry=registry).stream_analysis(FOUR_SUBSECTIONS, emitter)

    last = emitter.events[-1]
    assert last.event_type == AnalysisEventType.ERROR
    assert last.details == {"message": "no backend", "exceptionType": "ConfigurationError"}
    assert not emitter.of_type(AnalysisEventType.RESULT)
