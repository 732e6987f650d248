from __future__ import annotations

from typing import Optional

from azure.identity import (
    DefaultAzureCredential,
    get_bearer_token_provider,
)
from openai import AsyncAzureOpenAI


COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"


def build_azure_openai_client(
    *,
    endpoint: str,
    api_version: str,
    api_key: Optional[str] = None,
    timeout_seconds: float = 30.0,
) -> AsyncAzureOpenAI:
    """
    Build an Azure OpenAI client.

    Uses the API key when one is configured and Entra ID (managed
    identity, workload identity or developer login) otherwise.
    """
    if api_key:
        return AsyncAzureOpenAI(
            azure_endpoint=endpoint,
            api_key=api_key,
            api_version=api_version,
            timeout=timeout_seconds,
        )

    credential = DefaultAzureCredential()
    token_provider = get_bearer_token_provider(
        credential,
        COGNITIVE_SERVICES_SCOPE,
    )

    return AsyncAzureOpenAI(
        azure_endpoint=endpoint,
        azure_ad_token_provider=token_provider,
        api_version=api_version,
        timeout=timeout_seconds,
    )
