"""
FastAPI entrypoint for the Reviewer microservice.

This module defines the public HTTP interface for listing-document
compliance analysis. It accepts a structured document, invokes the
analysis orchestrator, and returns a DocumentAnalysisResult, either as
one JSON body or as an NDJSON progress stream.

The application holds no per-run state outside the request that owns
it; concurrent runs share only the stateless retriever and backends.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.responses import Response

from reviewer.app.config import ReviewerConfig
from reviewer.app.errors import AnalysisCancelledError, ConfigurationError
from reviewer.app.observability import StdlibActivityLog

# Domain
from reviewer.app.schemas.document import Document
from reviewer.app.schemas.requests import (
    FeedbackRequest,
    FeedbackResponse,
    RefineSubsectionRequest,
)
from reviewer.app.schemas.verdicts import DocumentAnalysisResult

# Agents / orchestration
from reviewer.app.agents.financial import FinancialAgent
from reviewer.app.agents.general import GeneralAgent
from reviewer.app.agents.governance import GovernanceAgent
from reviewer.app.agents.refinement_agent import RefinementChainAgent
from reviewer.app.agents.registry import AgentRegistry
from reviewer.app.agents.risk import RiskAgent
from reviewer.app.agents.routing import SectionKind
from reviewer.app.checks.placeholder_detector import PlaceholderDetector
from reviewer.app.coordinator.orchestrator import AnalysisOrchestrator

# Backends
from reviewer.app.backend_settings import get_backend_settings
from reviewer.app.llm.backend import AzureOpenAIChatBackend, DisabledLanguageModelBackend
from reviewer.app.llm.executor import StructuredLLMExecutor
from reviewer.app.llm.prompt_fragment import PromptFragment
from reviewer.app.retrieval.backends import AzureOpenAIEmbeddingBackend, HttpVectorIndex
from reviewer.app.retrieval.deduplicator import RuleDeduplicator
from reviewer.app.retrieval.feedback import FeedbackWriter
from reviewer.app.retrieval.retriever import RuleRetriever

# Refinement chain
from reviewer.app.refinement.assembler import build_refinement_pipeline

# Events / streaming
from reviewer.app.events import MemoryQueueEventEmitter

logger = logging.getLogger("reviewer.main")

APP_DIR = Path(__file__).parent
REFINEMENT_PROMPTS_DIR = APP_DIR / "refinement" / "prompts"
AGENT_PROMPTS_DIR = APP_DIR / "agents" / "prompts"

REFINEMENT_PROMPT_FAMILY = "REFINE"
REFINEMENT_PROMPT_VERSION = "1.0"


# ---------------------------------------------------------------------------
# Presentation helpers (presentation-only)
# ---------------------------------------------------------------------------

def pretty_json(data: Any) -> str:
    """
    Pretty-print JSON for human-readable output.

    PRESENTATION ONLY: not used for the NDJSON stream.
    """
    return json.dumps(
        data,
        ensure_ascii=False,
        allow_nan=False,
        indent=2,
        separators=(", ", ": "),
        default=str,
    )


class PrettyJSONResponse(Response):
    """Pretty-printed JSON response for human-readable console output."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return pretty_json(content).encode("utf-8")


# ---------------------------------------------------------------------------
# Prompt loading
# ---------------------------------------------------------------------------

def read_prompt(path: Path) -> str:
    if not path.exists():
        raise RuntimeError(f"Prompt file not found: {path}")
    return path.read_text(encoding="utf-8")


def refinement_prompt_factory(stage_id: str) -> PromptFragment:
    return PromptFragment(
        family=REFINEMENT_PROMPT_FAMILY,
        version=REFINEMENT_PROMPT_VERSION,
        key=stage_id,
        text=read_prompt(REFINEMENT_PROMPTS_DIR / f"{stage_id.lower()}.txt"),
    )


def general_review_prompt() -> PromptFragment:
    return PromptFragment(
        family="GENERAL",
        version="1.0",
        key="review",
        text=read_prompt(AGENT_PROMPTS_DIR / "general_review.txt"),
    )


# ---------------------------------------------------------------------------
# Application setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Reviewer Service",
    description="Compliance analysis of listing documents against exchange rules",
    version="0.3.0",
)


# ---------------------------------------------------------------------------
# Startup / Shutdown
# ---------------------------------------------------------------------------

@app.on_event("startup")
def startup_event() -> None:
    """
    Application startup hook.

    Configuration is loaded once and treated as immutable for the
    lifetime of the process. All external backends are wired explicitly
    here; with MODEL_PROVIDER=disabled none are built and any retrieval
    fails fast with ConfigurationError.
    """
    config = ReviewerConfig.from_env()
    activity_log = StdlibActivityLog()

    embedder = None
    index = None
    http_client: Optional[httpx.AsyncClient] = None
    chat_backend = DisabledLanguageModelBackend()
    timeout_seconds: Optional[float] = None

    # ------------------------------------------------------------------
    # External backends (embeddings, vector index, language model)
    # ------------------------------------------------------------------
    if config.MODEL_PROVIDER == "azure_openai":
        settings = get_backend_settings()
        api_key = (
            settings.azure_openai_api_key.get_secret_value()
            if settings.azure_openai_api_key
            else None
        )
        timeout_seconds = settings.llm_timeout_seconds

        embedder = AzureOpenAIEmbeddingBackend(
            endpoint=settings.azure_openai_endpoint,
            deployment=settings.azure_openai_embedding_deployment,
            api_version=settings.azure_openai_api_version,
            api_key=api_key,
            timeout_seconds=timeout_seconds,
        )
        http_client = httpx.AsyncClient(timeout=timeout_seconds)
        index = HttpVectorIndex(
            host=settings.vector_index_host,
            api_key=settings.vector_index_api_key.get_secret_value(),
            http_client=http_client,
        )
        chat_backend = AzureOpenAIChatBackend(
            endpoint=settings.azure_openai_endpoint,
            deployment=settings.azure_openai_deployment,
            api_version=settings.azure_openai_api_version,
            api_key=api_key,
            timeout_seconds=timeout_seconds,
        )

    # -----------------------------
    # Shared stateless components
    # -----------------------------
    retriever = RuleRetriever(
        embedder=embedder,
        index=index,
        default_corpus=config.DEFAULT_CORPUS,
        max_query_chars=config.MAX_EMBEDDING_CHARS,
        activity_log=activity_log,
    )
    deduplicator = RuleDeduplicator()
    placeholder_detector = PlaceholderDetector(
        display_length=config.PLACEHOLDER_DISPLAY_LENGTH,
    )

    # -----------------------------
    # LLM executors
    # -----------------------------
    general_executor = StructuredLLMExecutor(
        backend=chat_backend,
        timeout_seconds=timeout_seconds,
    )
    refinement_executor = StructuredLLMExecutor(
        backend=chat_backend,
        base_system_text=read_prompt(REFINEMENT_PROMPTS_DIR / "base_system.txt"),
        timeout_seconds=timeout_seconds,
    )

    # -----------------------------
    # Agents
    # -----------------------------
    evidence_options = dict(
        retriever=retriever,
        deduplicator=deduplicator,
        corpus=config.DEFAULT_CORPUS,
        no_evidence_penalty=config.NO_EVIDENCE_SCORE_PENALTY,
        activity_log=activity_log,
    )
    agents = {
        SectionKind.RISK: RiskAgent(
            placeholder_detector=placeholder_detector,
            lenient_default=config.RISK_LENIENT_DEFAULT,
            default_score=config.RISK_DEFAULT_SCORE,
            activity_log=activity_log,
        ),
        SectionKind.FINANCIAL: FinancialAgent(
            top_k=config.RETRIEVAL_TOP_K, **evidence_options
        ),
        SectionKind.GOVERNANCE: GovernanceAgent(
            top_k=config.RETRIEVAL_TOP_K, **evidence_options
        ),
        SectionKind.GENERAL: GeneralAgent(
            executor=general_executor,
            prompt=general_review_prompt(),
            top_k=config.GENERAL_AGENT_TOP_K,
            **evidence_options,
        ),
    }

    refinement_agent = RefinementChainAgent(
        pipeline=build_refinement_pipeline(
            executor=refinement_executor,
            prompt_factory=refinement_prompt_factory,
            activity_log=activity_log,
        ),
        top_k=config.RETRIEVAL_TOP_K,
        **evidence_options,
    )

    registry = AgentRegistry(
        agents,
        override=refinement_agent if config.ENABLE_REFINEMENT_CHAIN else None,
    )

    app.state.config = config
    app.state.http_client = http_client
    app.state.orchestrator = AnalysisOrchestrator(
        registry=registry,
        placeholder_detector=placeholder_detector,
        activity_log=activity_log,
    )
    app.state.refinement_agent = refinement_agent
    app.state.feedback_writer = FeedbackWriter(
        embedder=embedder,
        index=index,
        corpus=config.DEFAULT_CORPUS,
        enabled=config.ENABLE_FEEDBACK_MODE,
        activity_log=activity_log,
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Application shutdown hook."""
    http_client: Optional[httpx.AsyncClient] = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

@app.post(
    "/analyze",
    response_model=DocumentAnalysisResult,
    response_model_by_alias=True,
    response_class=PrettyJSONResponse,
    summary="Analyze a listing document",
)
async def analyze_document(document: Document):
    orchestrator: AnalysisOrchestrator = app.state.orchestrator

    try:
        result = await orchestrator.analyze(document, run_id=str(uuid4()))
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return result


# ---------------------------------------------------------------------------
# Streaming Analysis (NDJSON)
# ---------------------------------------------------------------------------

@app.post(
    "/analyze/stream",
    summary="Analyze a listing document (streaming progress)",
)
async def analyze_document_stream(document: Document):
    """
    Analyze while streaming progress as newline-delimited JSON.

    The stream ends with exactly one `result` or `error` line. A client
    disconnect cancels the run.
    """
    orchestrator: AnalysisOrchestrator = app.state.orchestrator
    run_id = str(uuid4())
    emitter = MemoryQueueEventEmitter()
    cancel_event = asyncio.Event()

    # --------------------------------------------------------------
    # Background analysis execution
    # --------------------------------------------------------------
    async def run_analysis_task() -> None:
        try:
            await orchestrator.stream_analysis(
                document,
                emitter,
                cancel_event=cancel_event,
                run_id=run_id,
            )
        except AnalysisCancelledError:
            logger.info("Analysis cancelled", extra={"run_id": run_id})
        except Exception:
            # Orchestrator already emitted the error line
            logger.exception("Streaming analysis failed", extra={"run_id": run_id})

    asyncio.create_task(run_analysis_task())

    # --------------------------------------------------------------
    # NDJSON event stream
    # --------------------------------------------------------------
    async def event_stream():
        try:
            async for event in emitter.stream():
                if event.is_wire_event:
                    yield event.to_ndjson()
        finally:
            if not emitter.closed:
                # Client disconnected before the terminal line
                cancel_event.set()

    return StreamingResponse(
        event_stream(),
        media_type="application/x-ndjson",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Refinement chain (single subsection)
# ---------------------------------------------------------------------------

@app.post(
    "/analyze/subsection/refine",
    response_class=PrettyJSONResponse,
    summary="Run the seven-stage refinement chain on one subsection",
)
async def refine_subsection(request: RefineSubsectionRequest) -> PrettyJSONResponse:
    agent: RefinementChainAgent = app.state.refinement_agent
    subsection = request.subsection

    try:
        result = await agent.refine(
            subsection.title,
            subsection.content,
            request.sibling_context,
            subsection_id=subsection.id,
            section_title=request.section_title,
            feedback=request.feedback,
            run_id=str(uuid4()),
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return PrettyJSONResponse(content=result.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Feedback write path (training mode only)
# ---------------------------------------------------------------------------

@app.post(
    "/feedback",
    response_model=FeedbackResponse,
    summary="Store an improved example in the corpus",
)
async def submit_feedback(request: FeedbackRequest) -> JSONResponse:
    writer: FeedbackWriter = app.state.feedback_writer

    if not writer.enabled:
        raise HTTPException(
            status_code=403,
            detail="Feedback writes are only accepted in feedback mode",
        )

    try:
        success = await writer.upsert(
            request.original_text,
            request.improved_text,
            request.metadata,
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    return JSONResponse(
        content=FeedbackResponse(success=success).model_dump(by_alias=True)
    )


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@app.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    config: ReviewerConfig = app.state.config
    return JSONResponse(
        content={
            "status": "ok",
            "service": "reviewer",
            "modelProvider": config.MODEL_PROVIDER,
            "refinementChain": config.ENABLE_REFINEMENT_CHAIN,
        }
    )
