"""
Backend endpoints and credentials.

Pydantic v2 settings management so that API keys are held as SecretStr
and never leak into logs or reprs. Only read when
ReviewerConfig.MODEL_PROVIDER selects a real provider.
"""

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    """
    External backend settings parsed from the environment.

    Fails fast at startup if a required endpoint or deployment is missing.
    """

    # ---------------------------------------------------------------------
    # Azure OpenAI (chat + embeddings)
    # ---------------------------------------------------------------------

    azure_openai_endpoint: Annotated[str, Field(min_length=1)]
    azure_openai_deployment: Annotated[str, Field(min_length=1)]
    azure_openai_embedding_deployment: Annotated[str, Field(min_length=1)]
    azure_openai_api_version: str = "2024-06-01"

    azure_openai_api_key: Annotated[
        Optional[SecretStr],
        Field(
            default=None,
            description=(
                "Optional API key. Entra ID credentials are used when absent."
            ),
        ),
    ]

    llm_timeout_seconds: Annotated[float, Field(default=30.0, gt=0)]

    # ---------------------------------------------------------------------
    # Vector index
    # ---------------------------------------------------------------------

    vector_index_host: Annotated[
        str,
        Field(min_length=1, description="Base URL of the vector index data plane"),
    ]
    vector_index_api_key: SecretStr

    model_config = SettingsConfigDict(
        env_prefix="REVIEWER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


@lru_cache(maxsize=1)
def get_backend_settings() -> BackendSettings:
    return BackendSettings()
