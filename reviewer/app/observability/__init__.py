from .activity_log import ActivityLog, NullActivityLog, StdlibActivityLog

__all__ = [
    "ActivityLog",
    "NullActivityLog",
    "StdlibActivityLog",
]
