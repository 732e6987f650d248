"""
Exception taxonomy for the reviewer service.

IMPORTANT:
- Only ConfigurationError and AnalysisCancelledError may abort a
  document analysis run.
- Everything raised below the agent boundary is converted into a
  subsection verdict and never reaches the caller.
"""


class ReviewerError(Exception):
    """Base class for all reviewer errors."""


class ConfigurationError(ReviewerError):
    """
    Raised when a component is used without the backends or mode it
    requires (e.g. retrieval with no embedding backend configured).
    """


class AnalysisCancelledError(ReviewerError):
    """Raised when an analysis run is cancelled by its caller."""

    def __init__(self, run_id: str | None = None) -> None:
        self.run_id = run_id
        message = "Analysis cancelled"
        if run_id:
            message = f"{message} (run {run_id})"
        super().__init__(message)


class AnalysisStreamError(ReviewerError):
    """Raised by the stream consumer when the server reports a failure."""
