from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from openai import APIConnectionError, RateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from reviewer.app.errors import ConfigurationError
from reviewer.app.llm.azure_client import build_azure_openai_client

logger = logging.getLogger(__name__)


class LanguageModelBackend(Protocol):
    """
    External completion backend.

    `messages` are chat messages ({"role", "content"}) that follow the
    system prompt. Returns the raw completion text, which callers must
    treat as untrusted (possibly non-JSON) output.
    """

    async def complete(
        self,
        *,
        system_prompt: str,
        messages: List[Dict[str, str]],
        json_mode: bool = True,
    ) -> str:
        ...


class AzureOpenAIChatBackend:
    """
    Azure OpenAI chat completions backend.

    Connection failures and rate limiting are retried with exponential
    backoff; every other error propagates to the caller.
    """

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

    @property
    def deployment(self) -> str:
        return self._deployment

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((APIConnectionError, RateLimitError)),
        reraise=True,
    )
    async def complete(
        self,
        *,
        system_prompt: str,
        messages: List[Dict[str, str]],
        json_mode: bool = True,
    ) -> str:
        request: Dict[str, object] = {
            "model": self._deployment,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(**request)

        if not response.choices:
            logger.warning("Completion returned no choices (deployment=%s)", self._deployment)
            return ""
        return response.choices[0].message.content or ""


class DisabledLanguageModelBackend:
    """Backend bound when MODEL_PROVIDER=disabled; every call fails fast."""

    deployment = "disabled"

    async def complete(
        self,
        *,
        system_prompt: str,
        messages: List[Dict[str, str]],
        json_mode: bool = True,
    ) -> str:
        raise ConfigurationError(
            "Language model calls require MODEL_PROVIDER=azure_openai"
        )
