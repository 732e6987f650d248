import json

import pytest
from fastapi.testclient import TestClient

from reviewer.app.main import app


PLACEHOLDER_AND_RISK = {
    "id": "doc-1",
    "sections": [
        {
            "id": "sec4",
            "title": "Risk Factors",
            "subsections": [
                {
                    "id": "sec4_market",
                    "title": "Market Risks",
                    "content": "A downturn may result in lower sales.",
                },
                {
                    "id": "sec4_other",
                    "title": "Other Risks",
                    "content": "Exposure is [TO BE CONFIRMED].",
                },
            ],
        }
    ],
}

NEEDS_RETRIEVAL = {
    "id": "doc-2",
    "sections": [
        {
            "id": "sec2",
            "title": "Offer",
            "subsections": [
                {"id": "sec2_use", "title": "Use of Funds", "content": "Funds open new stores."}
            ],
        }
    ],
}


@pytest.fixture
def client(monkeypatch):
    for name in (
        "REVIEWER_MODEL_PROVIDER",
        "REVIEWER_ENABLE_REFINEMENT_CHAIN",
        "REVIEWER_ENABLE_FEEDBACK_MODE",
    ):
        monkeypatch.delenv(name, raising=False)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "service": "reviewer",
        "modelProvider": "disabled",
        "refinementChain": False,
    }


def test_analyze_without_retrieval(client):
    response = client.post("/analyze", json=PLACEHOLDER_AND_RISK)

    assert response.status_code == 200
    body = response.json()
    section = body["sections"][0]
    assert [v["subsectionId"] for v in section["subsectionResults"]] == [
        "sec4_market",
        "sec4_other",
    ]
    assert section["subsectionResults"][1]["score"] == 0
    assert section["score"] == 43  # (85 + 0) / 2
    assert body["overallCompliance"] is False


def test_analyze_with_disabled_provider_is_unavailable(client):
    response = client.post("/analyze", json=NEEDS_RETRIEVAL)

    assert response.status_code == 503


def test_stream_ends_with_result(client):
    with client.stream("POST", "/analyze/stream", json=PLACEHOLDER_AND_RISK) as response:
        assert response.headers["content-type"].startswith("application/x-ndjson")
        messages = [json.loads(line) for line in response.iter_lines() if line]

    assert [m["type"] for m in messages] == [
        "progress",
        "section_complete",
        "progress",
        "section_complete",
        "result",
    ]
    assert [m["progress"] for m in messages if m["type"] == "progress"] == [50, 100]
    assert messages[1]["sectionId"] == "sec4_market"
    assert messages[-1]["result"]["documentId"] == "doc-1"


def test_stream_ends_with_error_for_fatal_failure(client):
    with client.stream("POST", "/analyze/stream", json=NEEDS_RETRIEVAL) as response:
        messages = [json.loads(line) for line in response.iter_lines() if line]

    assert messages[-1]["type"] == "error"
    assert messages[-1]["exceptionType"] == "ConfigurationError"
    assert all(m["type"] != "result" for m in messages)


def test_feedback_requires_feedback_mode(client):
    response = client.post(
        "/feedback",
        json={"originalText": "Old wording", "improvedText": "New wording"},
    )

    assert response.status_code == 403


def test_malformed_document_is_rejected(client):
    response = client.post("/analyze", json={"sections": []})

    assert response.status_code == 422
