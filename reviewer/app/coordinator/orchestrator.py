"""
Document analysis orchestrator.

IMPORTANT:
The orchestrator is a DUMB AUTHORITY over analysis order.

It MUST:
- process sections and subsections strictly sequentially, in input order
- contain every subsection failure at the subsection boundary
- hold run-local aggregation state only

It MUST NOT:
- retry agents or backends
- judge content itself (beyond the local placeholder check)
- return a partially filled result after a fatal error
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, List, Optional, Union
from uuid import uuid4

from reviewer.app.agents.registry import AgentRegistry
from reviewer.app.checks.placeholder_detector import PlaceholderDetector
from reviewer.app.errors import AnalysisCancelledError, ConfigurationError
from reviewer.app.events import (
    AnalysisEvent,
    AnalysisEventEmitter,
    AnalysisEventType,
    NullEventEmitter,
)
from reviewer.app.observability import ActivityLog, NullActivityLog
from reviewer.app.schemas.document import Document, Section, Subsection
from reviewer.app.schemas.verdicts import (
    AgentVerdict,
    DocumentAnalysisResult,
    ProgressEvent,
    SectionResult,
    SubsectionVerdict,
    round_half_up,
)


ProgressCallback = Callable[[int, str, str], Union[None, Awaitable[None]]]

PLACEHOLDER_SUGGESTION_PREFIX = "Complete placeholder content before submission"
AGENT_ERROR_PREFIX = "Error analyzing section"


class _SectionAggregate:
    """Run-local fold state for one section."""

    def __init__(self, section: Section) -> None:
        self.section = section
        self.analyzed = 0
        self.score_sum = 0
        self.is_compliant = True
        self.suggestions: List[str] = []
        self.verdicts: List[SubsectionVerdict] = []

    def fold(self, verdict: SubsectionVerdict) -> None:
        self.analyzed += 1
        self.score_sum += verdict.score
        self.verdicts.append(verdict)
        if not verdict.is_compliant:
            self.is_compliant = False
            self.suggestions.extend(
                f"[{verdict.title}] {suggestion}" for suggestion in verdict.suggestions
            )

    def result(self) -> SectionResult:
        score = round_half_up(self.score_sum / self.analyzed) if self.analyzed else 0
        return SectionResult(
            section_id=self.section.id,
            title=self.section.title,
            is_compliant=self.is_compliant,
            score=score,
            suggestions=list(self.suggestions),
            subsection_results=list(self.verdicts),
        )


class AnalysisOrchestrator:
    """
    Runs one document through placeholder detection and the section
    agents, and folds the verdicts into a DocumentAnalysisResult.
    """

    def __init__(
        self,
        *,
        registry: AgentRegistry,
        placeholder_detector: Optional[PlaceholderDetector] = None,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        self._registry = registry
        self._placeholders = placeholder_detector or PlaceholderDetector()
        self._log = activity_log or NullActivityLog()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze(
        self,
        document: Document,
        on_progress: Optional[ProgressCallback] = None,
        *,
        emitter: Optional[AnalysisEventEmitter] = None,
        cancel_event: Optional[asyncio.Event] = None,
        run_id: Optional[str] = None,
    ) -> DocumentAnalysisResult:
        """
        Analyze every subsection of `document` in order.

        Raises:
            AnalysisCancelledError: `cancel_event` was set during the run.
            ConfigurationError: a required backend is not configured.
        """
        emitter = emitter or NullEventEmitter()
        run_id = run_id or str(uuid4())

        self._log.info(
            "analysis_started",
            run_id=run_id,
            document_id=document.id,
            subsections=document.subsection_count,
        )
        await emitter.emit(
            AnalysisEvent(
                run_id=run_id,
                event_type=AnalysisEventType.ANALYSIS_STARTED,
                details={"document_id": document.id},
            )
        )

        section_results: List[SectionResult] = []
        overall_compliance = True

        for section in document.sections:
            aggregate = _SectionAggregate(section)
            total = len(section.subsections)

            for index, subsection in enumerate(section.subsections):
                self._check_cancelled(cancel_event, run_id)

                progress = ProgressEvent(
                    progress=round_half_up(100 * (index + 1) / total),
                    stage=f"Analyzing {subsection.title}",
                    current_section_id=section.id,
                )
                await self._report_progress(progress, on_progress, emitter, run_id)

                verdict = await self._analyze_subsection(
                    section, subsection, cancel_event=cancel_event, run_id=run_id
                )
                aggregate.fold(verdict)

                await emitter.emit(
                    AnalysisEvent(
                        run_id=run_id,
                        event_type=AnalysisEventType.SECTION_COMPLETE,
                        details={
                            "sectionId": subsection.id,
                            "analysisResult": verdict.model_dump(
                                mode="json", by_alias=True
                            ),
                        },
                    )
                )

            section_result = aggregate.result()
            overall_compliance = overall_compliance and section_result.is_compliant
            section_results.append(section_result)

        self._check_cancelled(cancel_event, run_id)

        result = DocumentAnalysisResult(
            document_id=document.id,
            sections=section_results,
            overall_compliance=overall_compliance,
        )
        self._log.info(
            "analysis_completed",
            run_id=run_id,
            document_id=document.id,
            overall_compliance=overall_compliance,
        )
        return result

    async def stream_analysis(
        self,
        document: Document,
        emitter: AnalysisEventEmitter,
        *,
        cancel_event: Optional[asyncio.Event] = None,
        run_id: Optional[str] = None,
    ) -> DocumentAnalysisResult:
        """
        Run analyze() and terminate the event stream with exactly one
        `result` or `error` event.
        """
        run_id = run_id or str(uuid4())
        try:
            result = await self.analyze(
                document,
                emitter=emitter,
                cancel_event=cancel_event,
                run_id=run_id,
            )
        except Exception as exc:
            self._log.error(
                "analysis_failed",
                run_id=run_id,
                document_id=document.id,
                exception_type=type(exc).__name__,
                error=str(exc),
            )
            await emitter.emit(
                AnalysisEvent(
                    run_id=run_id,
                    event_type=AnalysisEventType.ERROR,
                    details={
                        "message": str(exc) or type(exc).__name__,
                        "exceptionType": type(exc).__name__,
                    },
                )
            )
            raise

        await emitter.emit(
            AnalysisEvent(
                run_id=run_id,
                event_type=AnalysisEventType.RESULT,
                details={"result": result.model_dump(mode="json", by_alias=True)},
            )
        )
        return result

    # ------------------------------------------------------------------
    # Subsection analysis
    # ------------------------------------------------------------------

    async def _analyze_subsection(
        self,
        section: Section,
        subsection: Subsection,
        *,
        cancel_event: Optional[asyncio.Event],
        run_id: str,
    ) -> SubsectionVerdict:
        placeholders = self._placeholders.detect(subsection.content)
        if placeholders:
            self._log.info(
                "placeholders_detected",
                run_id=run_id,
                subsection_id=subsection.id,
                count=len(placeholders),
            )
            return SubsectionVerdict(
                subsection_id=subsection.id,
                title=subsection.title,
                is_compliant=False,
                score=0,
                suggestions=[
                    f"{PLACEHOLDER_SUGGESTION_PREFIX}: {', '.join(placeholders)}"
                ],
                metadata={"placeholders": placeholders},
            )

        kind, agent = self._registry.select(subsection.title, section.title)

        try:
            verdict = await self._run_cancellable(
                agent.analyze(
                    subsection.title,
                    subsection.content,
                    section.sibling_context(subsection),
                    subsection_id=subsection.id,
                    section_title=section.title,
                ),
                cancel_event=cancel_event,
                run_id=run_id,
            )
        except (AnalysisCancelledError, ConfigurationError):
            raise
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            self._log.warning(
                "subsection_analysis_failed",
                run_id=run_id,
                subsection_id=subsection.id,
                agent=kind.value,
                exception_type=type(exc).__name__,
                error=message,
            )
            return SubsectionVerdict(
                subsection_id=subsection.id,
                title=subsection.title,
                is_compliant=False,
                score=0,
                suggestions=[f"{AGENT_ERROR_PREFIX}: {message}"],
                error=message,
                metadata={"agent": kind.value},
            )

        return self._to_subsection_verdict(subsection, kind.value, verdict)

    @staticmethod
    def _to_subsection_verdict(
        subsection: Subsection,
        kind: str,
        verdict: AgentVerdict,
    ) -> SubsectionVerdict:
        return SubsectionVerdict(
            subsection_id=subsection.id,
            title=subsection.title,
            is_compliant=verdict.is_compliant,
            score=verdict.score,
            suggestions=list(verdict.suggestions),
            metadata={"kind": kind, **verdict.metadata},
        )

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event], run_id: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError(run_id)

    async def _run_cancellable(
        self,
        call: Awaitable[AgentVerdict],
        *,
        cancel_event: Optional[asyncio.Event],
        run_id: str,
    ) -> AgentVerdict:
        if cancel_event is None:
            return await call

        work = asyncio.ensure_future(call)
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if not work.done():
            work.cancel()
            try:
                await work
            except asyncio.CancelledError:
                pass
            raise AnalysisCancelledError(run_id)

        return work.result()

    # ------------------------------------------------------------------
    # Progress (observational only)
    # ------------------------------------------------------------------

    async def _report_progress(
        self,
        progress: ProgressEvent,
        on_progress: Optional[ProgressCallback],
        emitter: AnalysisEventEmitter,
        run_id: str,
    ) -> None:
        if on_progress is not None:
            try:
                outcome: Any = on_progress(
                    progress.progress,
                    progress.stage,
                    progress.current_section_id,
                )
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                self._log.warning(
                    "progress_callback_failed",
                    run_id=run_id,
                    error=str(exc) or type(exc).__name__,
                )

        await emitter.emit(
            AnalysisEvent(
                run_id=run_id,
                event_type=AnalysisEventType.PROGRESS,
                details=progress.model_dump(mode="json", by_alias=True),
            )
        )
