import pytest

from reviewer.app.agents.general import PARSE_FAILURE_SUGGESTION, GeneralAgent
from reviewer.app.llm.executor import StructuredLLMExecutor
from reviewer.tests.fakes import ScriptedLanguageModel, StubRetriever, scored_rule
from reviewer.tests.helpers import make_test_prompt

pytestmark = pytest.mark.anyio


def make_agent(replies, matches=None):
    model = ScriptedLanguageModel(replies)
    retriever = StubRetriever(
        matches
        if matches is not None
        else [scored_rule("ex-1", "Use of proceeds", "Net proceeds will fund expansion.")]
    )
    agent = GeneralAgent(
        retriever=retriever,
        executor=StructuredLLMExecutor(backend=model),
        prompt=make_test_prompt("general"),
    )
    return agent, model, retriever


async def test_no_critique_points_means_compliant():
    agent, _, _ = make_agent(
        [{"isCompliant": False, "critiquePoints": [], "score": 88, "analysis": "fine"}]
    )

    verdict = await agent.analyze("Use of Proceeds", "Net proceeds of 10 million fund two new stores.")

    assert verdict.is_compliant is True
    assert verdict.score == 88
    assert verdict.suggestions == []
    assert verdict.metadata["model_is_compliant"] is False


async def test_critique_points_are_capped_at_three():
    agent, _, _ = make_agent(
        [
            {
                "isCompliant": True,
                "critiquePoints": ["one", "two", "three", "four"],
                "score": 40,
            }
        ]
    )

    verdict = await agent.analyze("Use of Proceeds", "We will use the money.")

    assert verdict.is_compliant is False
    assert verdict.suggestions == ["one", "two", "three"]
    assert verdict.score == 40


async def test_fenced_json_reply_is_accepted():
    agent, _, _ = make_agent(
        ['Here you go:\n```json\n{"critiquePoints": ["State the amount raised."]}\n```']
    )

    verdict = await agent.analyze("Use of Proceeds", "We will use the money.")

    assert verdict.suggestions == ["State the amount raised."]
    # Score omitted by the model: non-compliant default
    assert verdict.score == 50


async def test_unparseable_reply_fails_safe():
    agent, _, _ = make_agent(["I think this section is mostly fine."])

    verdict = await agent.analyze("Use of Proceeds", "We will use the money.")

    assert verdict.is_compliant is False
    assert verdict.score == 0
    assert verdict.suggestions == [PARSE_FAILURE_SUGGESTION]


async def test_backend_error_is_embedded_in_suggestion():
    agent, _, _ = make_agent([ConnectionError("model endpoint unreachable")])

    verdict = await agent.analyze("Use of Proceeds", "We will use the money.")

    assert verdict.score == 0
    assert "model endpoint unreachable" in verdict.suggestions[0]
    assert verdict.metadata["failure_type"] == "unexpected_error"


async def test_no_reference_passages_costs_penalty():
    agent, _, _ = make_agent([{"critiquePoints": [], "score": 90}], matches=[])

    verdict = await agent.analyze("Use of Proceeds", "Net proceeds fund two new stores.")

    assert verdict.is_compliant is True
    assert verdict.score == 80


async def test_prompt_carries_references_siblings_and_role():
    agent, model, retriever = make_agent([{"critiquePoints": []}])

    await agent.analyze(
        "Use of Proceeds",
        "Net proceeds fund two new stores.",
        {"Use of Proceeds": "self", "Working Capital": "Working capital is sufficient " * 20},
        subsection_id="sec2_overview",
    )

    assert retriever.calls[0]["include_examples"] is True
    messages = [m["content"] for m in model.calls[0]["messages"]]
    assert "Net proceeds fund two new stores." in messages[0]
    assert "SECTION TYPE: general_detail" in messages[1]
    assert "Net proceeds will fund expansion." in messages[2]
    assert "--- START Working Capital ---" in messages[3]
    assert "self" not in messages[3]
