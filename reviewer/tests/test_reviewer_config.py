import pytest
from pydantic import ValidationError

from reviewer.app.agents.registry import AgentRegistry
from reviewer.app.agents.routing import SectionKind
from reviewer.app.backend_settings import BackendSettings
from reviewer.app.config import ReviewerConfig


# ----------------------------------------------------------------------
# ReviewerConfig
# ----------------------------------------------------------------------

def test_defaults():
    config = ReviewerConfig()

    assert config.MODEL_PROVIDER == "disabled"
    assert config.RETRIEVAL_TOP_K == 5
    assert config.ENABLE_REFINEMENT_CHAIN is False
    assert config.ENABLE_FEEDBACK_MODE is False


def test_from_env(monkeypatch):
    monkeypatch.setenv("REVIEWER_MODEL_PROVIDER", "azure_openai")
    monkeypatch.setenv("REVIEWER_RETRIEVAL_TOP_K", "8")
    monkeypatch.setenv("REVIEWER_ENABLE_REFINEMENT_CHAIN", "yes")
    monkeypatch.setenv("REVIEWER_RISK_LENIENT_DEFAULT", "false")

    config = ReviewerConfig.from_env()

    assert config.MODEL_PROVIDER == "azure_openai"
    assert config.RETRIEVAL_TOP_K == 8
    assert config.ENABLE_REFINEMENT_CHAIN is True
    assert config.RISK_LENIENT_DEFAULT is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"MODEL_PROVIDER": "openai"},
        {"RETRIEVAL_TOP_K": 0},
        {"PLACEHOLDER_DISPLAY_LENGTH": 3},
        {"RISK_DEFAULT_SCORE": 120},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        ReviewerConfig(**overrides)


def test_config_is_immutable():
    config = ReviewerConfig()

    with pytest.raises(ValidationError):
        config.RETRIEVAL_TOP_K = 9


# ----------------------------------------------------------------------
# BackendSettings
# ----------------------------------------------------------------------

def test_backend_settings_from_env(monkeypatch):
    monkeypatch.setenv("REVIEWER_AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")
    monkeypatch.setenv("REVIEWER_AZURE_OPENAI_DEPLOYMENT", "gpt-4o")
    monkeypatch.setenv("REVIEWER_AZURE_OPENAI_EMBEDDING_DEPLOYMENT", "text-embedding-3-small")
    monkeypatch.setenv("REVIEWER_VECTOR_INDEX_HOST", "https://index.example.net")
    monkeypatch.setenv("REVIEWER_VECTOR_INDEX_API_KEY", "secret-key")

    settings = BackendSettings(_env_file=None)

    assert settings.azure_openai_api_key is None
    assert settings.llm_timeout_seconds == 30.0
    assert settings.vector_index_api_key.get_secret_value() == "secret-key"
    assert "secret-key" not in repr(settings)


def test_backend_settings_fail_fast(monkeypatch):
    monkeypatch.delenv("REVIEWER_AZURE_OPENAI_ENDPOINT", raising=False)
    monkeypatch.delenv("REVIEWER_VECTOR_INDEX_HOST", raising=False)

    with pytest.raises(ValidationError):
        BackendSettings(_env_file=None)


# ----------------------------------------------------------------------
# AgentRegistry
# ----------------------------------------------------------------------

class NamedAgent:
    def __init__(self, name):
        self.name = name

    async def analyze(self, title, content, sibling_context=None, **kwargs):
        raise AssertionError("not called")


def test_registry_requires_every_kind():
    agents = {kind: NamedAgent(kind.value) for kind in SectionKind}
    del agents[SectionKind.GOVERNANCE]

    with pytest.raises(ValueError, match="governance"):
        AgentRegistry(agents)


def test_registry_selects_by_classification():
    registry = AgentRegistry({kind: NamedAgent(kind.value) for kind in SectionKind})

    kind, agent = registry.select("Board Composition", "Corporate Structure")

    assert kind == SectionKind.GOVERNANCE
    assert agent.name == "governance"


def test_registry_override_handles_every_kind():
    chain = NamedAgent("chain")
    registry = AgentRegistry(
        {kind: NamedAgent(kind.value) for kind in SectionKind},
        override=chain,
    )

    kind, agent = registry.select("Key Risks")

    assert kind == SectionKind.RISK
    assert agent is chain
