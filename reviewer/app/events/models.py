from __future__ import annotations

import json
from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4, UUID

from pydantic import BaseModel, Field, ConfigDict


# ----------------------------------------------------------------------
# Event Types
# ----------------------------------------------------------------------
class AnalysisEventType(str, Enum):
    """
    Progression events emitted during an analysis run.

    NOTE:
    Only the wire types (progress, section_complete, result, error) are
    serialized onto the NDJSON stream. The remaining types are internal
    telemetry for listeners attached in-process.
    """

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------
    ANALYSIS_STARTED = "analysis_started"

    # ------------------------------------------------------------------
    # Wire protocol
    # ------------------------------------------------------------------
    PROGRESS = "progress"
    SECTION_COMPLETE = "section_complete"
    RESULT = "result"
    ERROR = "error"

    # ------------------------------------------------------------------
    # Refinement chain telemetry
    # ------------------------------------------------------------------
    STAGE_STARTED = "stage_started"
    STAGE_COMPLETED = "stage_completed"

    # ------------------------------------------------------------------
    # LLM execution (observational)
    # ------------------------------------------------------------------
    LLM_EXECUTION_STARTED = "llm_execution_started"
    LLM_EXECUTION_COMPLETED = "llm_execution_completed"


WIRE_EVENT_TYPES = frozenset(
    {
        AnalysisEventType.PROGRESS,
        AnalysisEventType.SECTION_COMPLETE,
        AnalysisEventType.RESULT,
        AnalysisEventType.ERROR,
    }
)

TERMINAL_EVENT_TYPES = frozenset(
    {
        AnalysisEventType.RESULT,
        AnalysisEventType.ERROR,
    }
)


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class AnalysisEvent(BaseModel):
    """
    An immutable observation of progress within an analysis run.

    Events are observational only; dropping every event must not change
    the returned DocumentAnalysisResult.
    """

    event_id: UUID = Field(default_factory=uuid4)
    run_id: str = Field(..., description="The analysis run identifier")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: AnalysisEventType

    # Wire payload for stream events, telemetry fields otherwise
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    @property
    def is_wire_event(self) -> bool:
        return self.event_type in WIRE_EVENT_TYPES

    def to_ndjson(self) -> str:
        """
        Render the event as one newline-terminated JSON object.

        The object is tagged with a `type` discriminator and carries the
        event details at top level.
        """
        if not self.is_wire_event:
            raise ValueError(
                f"Event type '{self.event_type.value}' is not part of the stream"
            )
        payload: Dict[str, Any] = {"type": self.event_type.value}
        payload.update(self.details or {})
        return json.dumps(payload, ensure_ascii=False, default=str) + "\n"
