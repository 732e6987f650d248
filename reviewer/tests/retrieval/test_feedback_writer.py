import pytest

from reviewer.app.errors import ConfigurationError
from reviewer.app.retrieval.feedback import FeedbackWriter
from reviewer.tests.fakes import FailingIndex, HashEmbedding, InMemoryVectorIndex, ListActivityLog

pytestmark = pytest.mark.anyio


async def test_upsert_writes_example_record():
    embedder = HashEmbedding()
    index = InMemoryVectorIndex()
    writer = FeedbackWriter(embedder=embedder, index=index, corpus="training", enabled=True)

    ok = await writer.upsert(
        "Revenue grew.",
        "Revenue grew 12% to 4.2 million.",
        {"section": "sec3_financials"},
    )

    assert ok is True
    records = index.records("training")
    assert len(records) == 1
    record = records[0]
    assert record.id.startswith("example-")
    assert record.metadata["text"] == "Revenue grew."
    assert record.metadata["improved_text"] == "Revenue grew 12% to 4.2 million."
    assert record.metadata["type"] == "example_document"
    assert record.metadata["source"] == "training"
    assert record.metadata["section"] == "sec3_financials"
    assert "timestamp" in record.metadata
    assert embedder.calls == ["Revenue grew."]


async def test_caller_metadata_can_override_type_and_source():
    index = InMemoryVectorIndex()
    writer = FeedbackWriter(embedder=HashEmbedding(), index=index, corpus="c", enabled=True)

    await writer.upsert("a", "b", {"type": "reviewed_example", "source": "sponsor"})

    metadata = index.records("c")[0].metadata
    assert metadata["type"] == "reviewed_example"
    assert metadata["source"] == "sponsor"


async def test_backend_failure_returns_false():
    log = ListActivityLog()
    writer = FeedbackWriter(
        embedder=HashEmbedding(),
        index=FailingIndex(),
        corpus="c",
        enabled=True,
        activity_log=log,
    )

    assert await writer.upsert("a", "b") is False
    assert "feedback_upsert_failed" in log.events()


async def test_disabled_writer_refuses():
    writer = FeedbackWriter(
        embedder=HashEmbedding(), index=InMemoryVectorIndex(), corpus="c", enabled=False
    )

    with pytest.raises(ConfigurationError):
        await writer.upsert("a", "b")


async def test_missing_backends_refuse():
    writer = FeedbackWriter(embedder=None, index=None, corpus="c", enabled=True)

    with pytest.raises(ConfigurationError):
        await writer.upsert("a", "b")
