"""
Feedback write path.

Writes an improved example into the corpus so later retrievals can use
it as reference material. Only available in feedback mode and never
invoked by ordinary analysis.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from reviewer.app.errors import ConfigurationError
from reviewer.app.observability import ActivityLog, NullActivityLog
from reviewer.app.retrieval.backends import EmbeddingBackend, VectorIndex, VectorRecord


EXAMPLE_RECORD_TYPE = "example_document"
DEFAULT_FEEDBACK_SOURCE = "training"


def new_example_id() -> str:
    return f"example-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class FeedbackWriter:
    def __init__(
        self,
        *,
        embedder: Optional[EmbeddingBackend],
        index: Optional[VectorIndex],
        corpus: str,
        enabled: bool,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._corpus = corpus
        self._enabled = enabled
        self._log = activity_log or NullActivityLog()

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def upsert(
        self,
        original_text: str,
        improved_text: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Store `original_text` (embedded) with its improved counterpart.

        Returns False when the backend rejects the write.
        """
        if not self._enabled:
            raise ConfigurationError("Feedback writes require feedback mode")
        if self._embedder is None or self._index is None:
            raise ConfigurationError(
                "Feedback writes require a configured embedding backend "
                "and vector index"
            )

        extra = dict(metadata or {})
        record_metadata: Dict[str, Any] = {
            **extra,
            "text": original_text,
            "improved_text": improved_text,
            "type": extra.get("type", EXAMPLE_RECORD_TYPE),
            "source": extra.get("source", DEFAULT_FEEDBACK_SOURCE),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        record_id = new_example_id()

        try:
            vector = await self._embedder.embed(original_text)
            written = await self._index.upsert(
                records=[
                    VectorRecord(id=record_id, values=vector, metadata=record_metadata)
                ],
                corpus=self._corpus,
            )
        except Exception as exc:
            self._log.error(
                "feedback_upsert_failed",
                record_id=record_id,
                error=str(exc) or exc.__class__.__name__,
            )
            return False

        self._log.info("feedback_upserted", record_id=record_id, corpus=self._corpus)
        return written > 0
