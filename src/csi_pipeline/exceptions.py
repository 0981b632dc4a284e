"""
Exceptions raised by the feedback pipeline.

Every error derives from PipelineError, which keeps RuntimeError as its base
so callers that only know about RuntimeError still catch them.
"""

from typing import Any


class PipelineError(RuntimeError):
    """
    Base exception for pipeline errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (item_id,
                 customer_id, stage, etc.)
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ValidationError(PipelineError):
    """Raised when a feedback payload or item has no usable text."""


class StageFailure(PipelineError):
    """
    Raised when an analysis stage raises or times out.

    Attributes:
        stage: Name of the failing stage
        cause: The original exception
    """

    def __init__(
        self,
        stage: str,
        cause: BaseException,
        context: dict[str, Any] | None = None,
    ) -> None:
        context = dict(context or {})
        context["stage"] = stage
        detail = str(cause) or type(cause).__name__
        super().__init__(f"Stage '{stage}' failed: {detail}", context=context)
        self.stage = stage
        self.cause = cause


class StorageUnavailable(PipelineError):
    """Raised when the session store or memory log cannot be used."""


class ConfigurationError(PipelineError):
    """Raised for invalid settings."""
