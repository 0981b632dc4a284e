"""Service context: owns the stores, stages and coordinator for one process."""
from typing import Any

from .cache import FileCache
from .client import APIClient
from .collector import collect
from .config import Settings
from .exceptions import ValidationError
from .models import MemoryRecord
from .observability import Metrics, configure_logging, get_logger
from .orchestrator import Coordinator
from .stages import (
    KeywordRootCauseClassifier,
    KeywordSentimentAnalyzer,
    LLMReplyDrafter,
    LLMRootCauseClassifier,
    LLMSentimentAnalyzer,
    RuleBasedActionPlanner,
    RuleBasedEscalationEvaluator,
    TemplateReplyDrafter,
)
from .store import MemoryLog, SessionStore

GENERIC_ERROR = "Failed to process feedback"


class FeedbackService:
    """Entry point for ingestion: collect, run the pipeline, shape the response."""

    def __init__(
        self,
        coordinator: Coordinator,
        sessions: SessionStore,
        memory: MemoryLog,
        metrics: Metrics,
        logger=None,
    ):
        self.coordinator = coordinator
        self.sessions = sessions
        self.memory = memory
        self.metrics = metrics
        self.logger = logger or get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedbackService":
        """Wire heuristic or model-backed stages according to settings."""
        configure_logging(settings.log_level)
        logger = get_logger("csi_pipeline")
        metrics = Metrics()
        sessions = SessionStore()
        memory = MemoryLog()

        planner = RuleBasedActionPlanner(logger=logger)
        escalation = RuleBasedEscalationEvaluator(logger=logger)
        if settings.analyzer_backend == "llm":
            api = APIClient(
                settings.anthropic_api_key,
                model=settings.model,
                max_retries=settings.max_retries,
                timeout=settings.call_timeout,
                backoff=settings.retry_backoff,
                logger=logger,
            )
            cache = FileCache(settings.cache_dir)
            sentiment = LLMSentimentAnalyzer(api, cache=cache, logger=logger)
            root_cause = LLMRootCauseClassifier(api, cache=cache, logger=logger)
            drafter = LLMReplyDrafter(api, support_team=settings.support_team, logger=logger)
        else:
            sentiment = KeywordSentimentAnalyzer(logger=logger)
            root_cause = KeywordRootCauseClassifier(logger=logger)
            drafter = TemplateReplyDrafter(support_team=settings.support_team, logger=logger)

        coordinator = Coordinator(
            sessions=sessions,
            memory=memory,
            sentiment=sentiment,
            root_cause=root_cause,
            planner=planner,
            escalation=escalation,
            drafter=drafter,
            logger=logger,
            metrics=metrics,
            stage_timeout=settings.stage_timeout,
        )
        return cls(coordinator, sessions, memory, metrics, logger=logger)

    async def ingest(self, payload: dict[str, Any] | None) -> tuple[int, dict[str, Any]]:
        """Process one payload; returns (status, body) for the transport layer."""
        try:
            item = collect(payload)
            result = await self.coordinator.handle(item)
        except ValidationError as e:
            self.logger.warning("Rejected feedback", extra={"error": e.message})
            return 400, {"error": e.message}
        except Exception as e:
            self.logger.exception("Ingest error", extra={"error": str(e)})
            return 500, {"error": GENERIC_ERROR}
        return 200, {"id": item.id, "result": result.model_dump(mode="json", by_alias=True)}

    async def history(self, customer_id: str) -> list[MemoryRecord]:
        return await self.memory.read_all(customer_id)

    async def close(self) -> None:
        await self.sessions.close()
        await self.memory.close()
