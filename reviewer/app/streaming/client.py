"""
NDJSON analysis stream consumer.

IMPORTANT:
- Each line is one JSON object tagged with `type`.
- An `error` message terminates the stream and is raised as
  AnalysisStreamError; it is never turned into an empty result.
- A stream that ends without a `result` message is a failure too.
"""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, AsyncIterable, Callable, Dict, Optional

import httpx

from reviewer.app.errors import AnalysisStreamError
from reviewer.app.schemas.document import Document
from reviewer.app.schemas.verdicts import (
    DocumentAnalysisResult,
    ProgressEvent,
    SubsectionVerdict,
)

logger = logging.getLogger("reviewer.streaming")


ProgressHandler = Callable[[ProgressEvent], Any]
SectionCompleteHandler = Callable[[str, SubsectionVerdict], Any]


async def _call(handler: Optional[Callable[..., Any]], *args: Any) -> None:
    if handler is None:
        return
    outcome = handler(*args)
    if inspect.isawaitable(outcome):
        await outcome


async def consume_analysis_stream(
    lines: AsyncIterable[str],
    on_progress: Optional[ProgressHandler] = None,
    on_section_complete: Optional[SectionCompleteHandler] = None,
) -> DocumentAnalysisResult:
    """
    Drive callbacks from an NDJSON analysis stream and return the final
    DocumentAnalysisResult.
    """
    async for raw in lines:
        line = raw.strip()
        if not line:
            continue

        try:
            message: Dict[str, Any] = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Skipping malformed stream line", extra={"line": line[:200]})
            continue

        kind = message.get("type")

        if kind == "progress":
            await _call(on_progress, ProgressEvent.model_validate(_without_type(message)))
        elif kind == "section_complete":
            verdict = SubsectionVerdict.model_validate(message.get("analysisResult") or {})
            await _call(on_section_complete, message.get("sectionId", ""), verdict)
        elif kind == "result":
            return DocumentAnalysisResult.model_validate(message.get("result") or {})
        elif kind == "error":
            raise AnalysisStreamError(message.get("message") or "Analysis failed")
        else:
            logger.debug("Ignoring unknown stream message", extra={"type": kind})

    raise AnalysisStreamError("Analysis stream ended without a result")


def _without_type(message: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in message.items() if key != "type"}


class AnalysisStreamClient:
    """
    Async client for the streaming analysis endpoint.

    The httpx client is owned by the caller.
    """

    STREAM_PATH = "/analyze/stream"

    def __init__(self, base_url: str, http_client: httpx.AsyncClient) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = http_client

    async def analyze(
        self,
        document: Document,
        on_progress: Optional[ProgressHandler] = None,
        on_section_complete: Optional[SectionCompleteHandler] = None,
    ) -> DocumentAnalysisResult:
        async with self.client.stream(
            "POST",
            f"{self.base_url}{self.STREAM_PATH}",
            json=document.model_dump(mode="json", by_alias=True),
            headers={"Accept": "application/x-ndjson"},
        ) as response:
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                await response.aread()
                logger.exception(
                    "Analysis stream request failed",
                    extra={
                        "status_code": exc.response.status_code,
                        "response_text": exc.response.text,
                    },
                )
                raise AnalysisStreamError(
                    f"Analysis stream request failed with HTTP {exc.response.status_code}"
                ) from exc

            return await consume_analysis_stream(
                response.aiter_lines(),
                on_progress=on_progress,
                on_section_complete=on_section_complete,
            )
