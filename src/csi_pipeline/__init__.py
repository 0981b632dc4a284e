"""Customer Sentiment Investigator - feedback analysis pipeline."""
from .collector import collect
from .config import Settings, load_settings
from .exceptions import (
    ConfigurationError,
    PipelineError,
    StageFailure,
    StorageUnavailable,
    ValidationError,
)
from .models import FeedbackItem, PipelineResult, Session
from .orchestrator import Coordinator
from .service import FeedbackService
from .store import MemoryLog, SessionStore

__version__ = "0.1.0"

__all__ = [
    "collect",
    "ConfigurationError",
    "Coordinator",
    "FeedbackItem",
    "FeedbackService",
    "load_settings",
    "MemoryLog",
    "PipelineError",
    "PipelineResult",
    "Session",
    "SessionStore",
    "Settings",
    "StageFailure",
    "StorageUnavailable",
    "ValidationError",
]
