"""
External retrieval collaborators: embedding generation and the vector
index.

Only the request/response contract is modelled here. The HTTP index
speaks a Pinecone-compatible data-plane API (POST /query,
POST /vectors/upsert, Api-Key header); corpora map to namespaces.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, List, Optional, Protocol

import httpx
from openai import APIConnectionError, RateLimitError
from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from reviewer.app.llm.azure_client import build_azure_openai_client

logger = logging.getLogger("reviewer.retrieval")


# ----------------------------------------------------------------------
# Wire models
# ----------------------------------------------------------------------

class VectorMatch(BaseModel):
    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="ignore")


class VectorRecord(BaseModel):
    id: str
    values: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")


# ----------------------------------------------------------------------
# Interfaces
# ----------------------------------------------------------------------

class EmbeddingBackend(Protocol):
    async def embed(self, text: str) -> List[float]:
        ...


class VectorIndex(Protocol):
    async def query(
        self,
        *,
        vector: List[float],
        top_k: int,
        corpus: str,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[VectorMatch]:
        ...

    async def upsert(self, *, records: List[VectorRecord], corpus: str) -> int:
        ...


# ----------------------------------------------------------------------
# Azure OpenAI embeddings
# ----------------------------------------------------------------------

class AzureOpenAIEmbeddingBackend:
    def __init__(
        self,
        *,
        endpoint: str,
        deployment: str,
        api_version: str,
        api_key: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._deployment = deployment
        self._client = build_azure_openai_client(
            endpoint=endpoint,
            api_version=api_version,
            api_key=api_key,
            timeout_seconds=timeout_seconds,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type((APIConnectionError, RateLimitError)),
        reraise=True,
    )
    async def embed(self, text: str) -> List[float]:
        response = await self._client.embeddings.create(
            model=self._deployment,
            input=text,
        )
        return list(response.data[0].embedding)


# ----------------------------------------------------------------------
# HTTP vector index
# ----------------------------------------------------------------------

class IndexBusy(RuntimeError):
    """
    Internal sentinel for throttling / temporarily unavailable responses
    (429, 503). Explicitly retryable.
    """


class HttpVectorIndex:
    """
    Async client for a Pinecone-compatible vector index data plane.
    """

    _RETRYABLE_STATUS = {429, 503}

    def __init__(
        self,
        *,
        host: str,
        api_key: str,
        http_client: Annotated[
            httpx.AsyncClient,
            "Persistent HTTP client",
        ],
    ) -> None:
        self.base_url = host.rstrip("/")
        if not self.base_url.startswith(("http://", "https://")):
            self.base_url = f"https://{self.base_url}"
        self._api_key = api_key
        self.client = http_client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def query(
        self,
        *,
        vector: List[float],
        top_k: int,
        corpus: str,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[VectorMatch]:
        payload: Dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
            "namespace": corpus,
        }
        if metadata_filter:
            payload["filter"] = {
                key: {"$eq": value} for key, value in metadata_filter.items()
            }

        data = await self._post("/query", payload)
        return [VectorMatch.model_validate(m) for m in data.get("matches", [])]

    async def upsert(self, *, records: List[VectorRecord], corpus: str) -> int:
        payload = {
            "vectors": [record.model_dump() for record in records],
            "namespace": corpus,
        }
        data = await self._post("/vectors/upsert", payload)
        return int(data.get("upsertedCount", len(records)))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_delay(30),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type((httpx.TransportError, IndexBusy)),
        reraise=True,
    )
    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post(
            f"{self.base_url}{path}",
            headers={
                "Api-Key": self._api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            json=payload,
            timeout=15.0,
        )

        if response.status_code in self._RETRYABLE_STATUS:
            raise IndexBusy(f"index_busy:{response.status_code}")

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError:
            logger.exception(
                "vector_index_request_failed",
                extra={
                    "status_code": response.status_code,
                    "response_body": response.text,
                    "path": path,
                },
            )
            raise

        return response.json()
