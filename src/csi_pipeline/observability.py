"""
Logging and metrics for the feedback pipeline.

Loggers are contextual adapters: every record carries the correlation id of
the feedback item being processed plus any `extra` passed at the call site.
"""

import contextvars
import logging
import sys
import threading
from collections import Counter
from typing import Any

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> contextvars.Token:
    """Bind a correlation id to the current context; returns a reset token."""
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: contextvars.Token) -> None:
    _correlation_id.reset(token)


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds the correlation id and call-site extras."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context: dict[str, Any] = dict(self.extra or {})
        correlation_id = get_correlation_id()
        if correlation_id:
            context["correlation_id"] = correlation_id
        context.update(kwargs.get("extra") or {})
        kwargs["extra"] = context
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextualLoggerAdapter:
    """
    Get a contextual logger.

    Args:
        name: Logger name (typically __name__)
        **context: Fixed context added to every record from this logger

    Returns:
        ContextualLoggerAdapter instance
    """
    return ContextualLoggerAdapter(logging.getLogger(name), context)


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a single stdout handler to the package logger."""
    root = logging.getLogger("csi_pipeline")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(handler)
    return root


class Metrics:
    """Thread-safe named counters."""

    def __init__(self):
        self._counts: Counter[str] = Counter()
        self._lock = threading.Lock()

    def incr(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[key] += amount

    def get(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)
