"""
Exception hierarchy for the status-code stream job.

ConfigurationError is fatal and raised only while the job is being assembled.
MalformedRecordError is raised per record by the transform stage.
"""


class PipelineError(Exception):
    """
    Base exception for all job errors.

    Attributes:
        message: Human-readable error description
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    def __init__(self, message: str, cause: Exception = None, context: dict = None):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class ConfigurationError(PipelineError):
    """Invalid or missing configuration. The job must not start."""


class MalformedRecordError(PipelineError):
    """An input record could not be parsed or lacks the expected field."""
