"""
Runtime configuration for the reviewer service.

This module centralizes environment-driven analysis policy and feature
flags: which corpus is queried, how many rules are retrieved, how lenient
the risk checker is, and whether the deep refinement chain or the
feedback write path are enabled.

Backend endpoints and credentials live in
reviewer.app.backend_settings; this model holds policy only.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator


class ReviewerConfig(BaseModel):
    """
    Runtime configuration for the reviewer service.

    Configuration is read once at startup and is immutable afterwards.
    """

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    DEFAULT_CORPUS: str = Field(
        "exchangedocs",
        description="Corpus queried when a caller does not name one",
    )

    RETRIEVAL_TOP_K: int = Field(
        5,
        description="Number of rules retrieved per subsection",
    )

    GENERAL_AGENT_TOP_K: int = Field(
        3,
        description="Number of reference passages retrieved by the general agent",
    )

    MAX_EMBEDDING_CHARS: int = Field(
        8000,
        description="Query text is truncated to this length before embedding",
    )

    # ------------------------------------------------------------------
    # Checker policy
    # ------------------------------------------------------------------

    PLACEHOLDER_DISPLAY_LENGTH: int = Field(
        50,
        description="Maximum display length of a reported placeholder token",
    )

    RISK_LENIENT_DEFAULT: bool = Field(
        True,
        description=(
            "Accept risk prose that neither looks incomplete nor matches "
            "the forward-looking pattern"
        ),
    )

    RISK_DEFAULT_SCORE: int = Field(
        75,
        description="Score given by the lenient risk default",
    )

    NO_EVIDENCE_SCORE_PENALTY: int = Field(
        10,
        description="Score deducted when retrieval returns no evidence",
    )

    # ------------------------------------------------------------------
    # Execution gates
    # ------------------------------------------------------------------

    ENABLE_REFINEMENT_CHAIN: bool = Field(
        False,
        description="Analyze every subsection with the seven-stage chain",
    )

    ENABLE_FEEDBACK_MODE: bool = Field(
        False,
        description="Allow writing feedback examples into the corpus",
    )

    MODEL_PROVIDER: str = Field(
        "disabled",
        description="Embedding / language-model provider identifier",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("MODEL_PROVIDER")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        allowed = {"disabled", "azure_openai"}
        if v not in allowed:
            raise ValueError(
                f"Unsupported MODEL_PROVIDER '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return v

    @field_validator("RETRIEVAL_TOP_K", "GENERAL_AGENT_TOP_K", "MAX_EMBEDDING_CHARS")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be a positive integer")
        return v

    @field_validator("PLACEHOLDER_DISPLAY_LENGTH")
    @classmethod
    def display_length_floor(cls, v: int) -> int:
        if v < 8:
            raise ValueError("PLACEHOLDER_DISPLAY_LENGTH must be at least 8")
        return v

    @field_validator("RISK_DEFAULT_SCORE", "NO_EVIDENCE_SCORE_PENALTY")
    @classmethod
    def within_score_range(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("value must be within [0, 100]")
        return v

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "ReviewerConfig":
        """
        Load configuration from environment variables.

        All values are parsed once at startup and must remain immutable.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        return cls(
            DEFAULT_CORPUS=os.getenv("REVIEWER_DEFAULT_CORPUS", "exchangedocs"),
            RETRIEVAL_TOP_K=int(os.getenv("REVIEWER_RETRIEVAL_TOP_K", "5")),
            GENERAL_AGENT_TOP_K=int(
                os.getenv("REVIEWER_GENERAL_AGENT_TOP_K", "3")
            ),
            MAX_EMBEDDING_CHARS=int(
                os.getenv("REVIEWER_MAX_EMBEDDING_CHARS", "8000")
            ),
            PLACEHOLDER_DISPLAY_LENGTH=int(
                os.getenv("REVIEWER_PLACEHOLDER_DISPLAY_LENGTH", "50")
            ),
            RISK_LENIENT_DEFAULT=env_bool("REVIEWER_RISK_LENIENT_DEFAULT", True),
            RISK_DEFAULT_SCORE=int(os.getenv("REVIEWER_RISK_DEFAULT_SCORE", "75")),
            NO_EVIDENCE_SCORE_PENALTY=int(
                os.getenv("REVIEWER_NO_EVIDENCE_SCORE_PENALTY", "10")
            ),
            ENABLE_REFINEMENT_CHAIN=env_bool(
                "REVIEWER_ENABLE_REFINEMENT_CHAIN", False
            ),
            ENABLE_FEEDBACK_MODE=env_bool("REVIEWER_ENABLE_FEEDBACK_MODE", False),
            MODEL_PROVIDER=os.getenv("REVIEWER_MODEL_PROVIDER", "disabled"),
        )

    model_config = {
        "frozen": True,
    }
