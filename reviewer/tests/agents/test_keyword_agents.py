import pytest

from reviewer.app.agents.base import MISROUTED_SUGGESTION
from reviewer.app.agents.financial import FinancialAgent
from reviewer.app.agents.governance import (
    BOARD_COMPOSITION_SUGGESTION,
    COMMITTEE_SUGGESTION,
    GovernanceAgent,
)
from reviewer.app.agents.risk import RiskAgent
from reviewer.tests.fakes import StubRetriever, scored_rule

pytestmark = pytest.mark.anyio


def evidence():
    return [scored_rule("r-1", "Financial statements", "Three years of audited accounts.")]


# ----------------------------------------------------------------------
# Risk
# ----------------------------------------------------------------------

async def test_risk_forward_looking_prose_is_compliant():
    verdict = await RiskAgent().analyze(
        "Risk Factors",
        "Changes in interest rates could adversely affect our results of operations.",
    )

    assert verdict.is_compliant is True
    assert verdict.score == 85


async def test_risk_placeholders_score_forty():
    verdict = await RiskAgent().analyze(
        "Risk Factors",
        "Currency movements may impact revenue. Details TBD.",
    )

    assert verdict.is_compliant is False
    assert verdict.score == 40
    assert verdict.metadata["placeholders"] == ["TBD"]


async def test_risk_lenient_default():
    verdict = await RiskAgent().analyze("Risk Factors", "We operate in a competitive market.")

    assert verdict.is_compliant is True
    assert verdict.score == 75


async def test_risk_strict_default_when_configured():
    agent = RiskAgent(lenient_default=False, default_score=55)
    verdict = await agent.analyze("Risk Factors", "We operate in a competitive market.")

    assert verdict.is_compliant is False
    assert verdict.score == 55
    assert len(verdict.suggestions) == 1


async def test_risk_misrouted_never_raises():
    verdict = await RiskAgent().analyze("Dividend policy", "Dividends may affect cash.")

    assert verdict.is_compliant is False
    assert verdict.score == 0
    assert verdict.suggestions == [MISROUTED_SUGGESTION]


# ----------------------------------------------------------------------
# Financial
# ----------------------------------------------------------------------

async def test_financial_complete_content_passes_with_evidence():
    retriever = StubRetriever(evidence())
    agent = FinancialAgent(retriever=retriever)

    verdict = await agent.analyze(
        "Financial Information",
        "Revenue was 4.2 million in 2023.\nProfit before tax was 0.8 million.",
    )

    assert verdict.is_compliant is True
    assert verdict.score == 85
    assert verdict.suggestions == []
    assert verdict.metadata["matched_rule_ids"] == ["r-1"]
    assert retriever.calls[0]["title"] == "Financial Information"


async def test_financial_without_evidence_is_penalized():
    agent = FinancialAgent(retriever=StubRetriever([]), no_evidence_penalty=10)

    verdict = await agent.analyze(
        "Financial Information",
        "Revenue was 4.2 million in 2023.\nProfit before tax was 0.8 million.",
    )

    assert verdict.score == 75


async def test_financial_missing_numbers_and_metrics():
    retriever = StubRetriever(evidence())
    agent = FinancialAgent(retriever=retriever)

    verdict = await agent.analyze("Financial Information", "We performed well this year.")

    assert verdict.is_compliant is False
    assert verdict.score == 0
    assert len(verdict.suggestions) == 3
    assert "numerical data" in verdict.suggestions[0]
    assert retriever.calls == []


async def test_financial_misrouted():
    verdict = await FinancialAgent(retriever=StubRetriever()).analyze(
        "Company History", "Revenue was 4 million."
    )

    assert verdict.score == 0
    assert verdict.suggestions == [MISROUTED_SUGGESTION]


# ----------------------------------------------------------------------
# Governance
# ----------------------------------------------------------------------

async def test_board_of_directors_without_director_mention():
    agent = GovernanceAgent(retriever=StubRetriever(evidence()))

    verdict = await agent.analyze(
        "Board of Directors",
        "The board meets four times a year and reviews strategy.",
    )

    assert verdict.is_compliant is False
    assert verdict.score == 0
    assert verdict.suggestions[0] == BOARD_COMPOSITION_SUGGESTION
    assert "board composition" in verdict.suggestions[0]


async def test_governance_passes_and_recommends_committees():
    agent = GovernanceAgent(retriever=StubRetriever(evidence()))

    verdict = await agent.analyze(
        "Board of Directors",
        "The board consists of five directors.\nTwo directors are independent.",
    )

    assert verdict.is_compliant is True
    assert verdict.score == 85
    assert verdict.suggestions == [COMMITTEE_SUGGESTION]


async def test_governance_misrouted():
    verdict = await GovernanceAgent(retriever=StubRetriever()).analyze(
        "Use of proceeds", "The board of directors approved the offer."
    )

    assert verdict.suggestions == [MISROUTED_SUGGESTION]
