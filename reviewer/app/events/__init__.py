from .models import AnalysisEvent, AnalysisEventType, WIRE_EVENT_TYPES
from .emitter import AnalysisEventEmitter, NullEventEmitter
from .memory_emitter import MemoryQueueEventEmitter

__all__ = [
    "AnalysisEvent",
    "AnalysisEventType",
    "WIRE_EVENT_TYPES",
    "AnalysisEventEmitter",
    "NullEventEmitter",
    "MemoryQueueEventEmitter",
]
