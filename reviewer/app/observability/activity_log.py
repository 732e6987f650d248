from __future__ import annotations

import logging
from typing import Any, Protocol


class ActivityLog(Protocol):
    """
    Cross-cutting activity log handed to each component explicitly.

    Implementations must be:
    - fail-safe (logging failures must not crash an analysis)
    - side-effect free with respect to verdicts
    """

    def info(self, event: str, **fields: Any) -> None:
        ...

    def warning(self, event: str, **fields: Any) -> None:
        ...

    def error(self, event: str, **fields: Any) -> None:
        ...


class NullActivityLog:
    """
    A safe no-op activity log.

    Used when:
    - tests do not care about log output
    - a component is constructed without an explicit log
    """

    def info(self, event: str, **fields: Any) -> None:
        return

    def warning(self, event: str, **fields: Any) -> None:
        return

    def error(self, event: str, **fields: Any) -> None:
        return


class StdlibActivityLog:
    """
    Activity log backed by the standard logging module.

    Fields are rendered as sorted key=value pairs after the event name.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("reviewer.activity")

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, fields)

    def _log(self, level: int, event: str, fields: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        rendered = " ".join(f"{k}={fields[k]!r}" for k in sorted(fields))
        self._logger.log(level, "%s %s", event, rendered)
