"""Pipeline coordination: runs the analysis stages over one feedback item."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from .exceptions import StageFailure, ValidationError
from .models import FeedbackItem, MemoryRecord, PipelineResult, RootCauseResult, utcnow
from .observability import Metrics, get_logger, reset_correlation_id, set_correlation_id
from .stages import (
    ACTION_PLANNER,
    ESCALATION,
    REPLY_DRAFTER,
    ROOT_CAUSE,
    SENTIMENT,
    ActionPlanner,
    EscalationEvaluator,
    ReplyDrafter,
    RootCauseClassifier,
    SentimentAnalyzer,
)
from .store import MemoryLog, SessionStore

T = TypeVar("T")


class Coordinator:
    """Sequences the stages for one feedback item.

    Order: session lookup, sentiment, then root cause concurrently with the
    memory append (joined before anything else runs), then action plan,
    escalation, reply, and finally the session update.
    """

    def __init__(
        self,
        sessions: SessionStore,
        memory: MemoryLog,
        sentiment: SentimentAnalyzer,
        root_cause: RootCauseClassifier,
        planner: ActionPlanner,
        escalation: EscalationEvaluator,
        drafter: ReplyDrafter,
        logger: logging.LoggerAdapter | None = None,
        metrics: Metrics | None = None,
        stage_timeout: float | None = 30.0,
    ):
        self.sessions = sessions
        self.memory = memory
        self.sentiment = sentiment
        self.root_cause = root_cause
        self.planner = planner
        self.escalation = escalation
        self.drafter = drafter
        self.logger = logger or get_logger(__name__)
        self.metrics = metrics
        self.stage_timeout = stage_timeout

    async def handle(self, item: FeedbackItem) -> PipelineResult:
        """Run the full pipeline for one item.

        Raises:
            ValidationError: the item has no text
            StageFailure: a stage raised or timed out
            StorageUnavailable: the session store or memory log is closed
        """
        if not item.text or not item.text.strip():
            raise ValidationError("Missing feedback text", context={"item_id": item.id})

        token = set_correlation_id(item.id)
        try:
            result = await self._run(item)
        except Exception:
            self._count("failures")
            raise
        finally:
            reset_correlation_id(token)

        self._count("processed")
        if result.escalate.escalate:
            self._count("escalations")
        return result

    async def _run(self, item: FeedbackItem) -> PipelineResult:
        self.logger.info("Coordinator: starting handling", extra={"item_id": item.id})
        session = await self.sessions.get_or_create(item.customer_id)

        sentiment = await self._run_stage(SENTIMENT, self.sentiment.analyze, item.text)

        record = MemoryRecord(text=item.text, sentiment=sentiment, item_id=item.id)
        root_cause = await self._classify_and_remember(item, record)

        action_plan = await self._run_stage(
            ACTION_PLANNER, self.planner.plan, sentiment, root_cause, session
        )
        escalate = await self._run_stage(
            ESCALATION, self.escalation.evaluate, sentiment, root_cause
        )
        response_draft = await self._run_stage(
            REPLY_DRAFTER, self.drafter.draft, item.text, sentiment, action_plan, session
        )

        await self.sessions.update(
            item.customer_id,
            {"last_processed": utcnow()},
            increments={"past_escalations": 1} if escalate.escalate else None,
        )

        result = PipelineResult(
            sentiment=sentiment,
            root_cause=root_cause,
            action_plan=action_plan,
            escalate=escalate,
            response_draft=response_draft,
        )
        self.logger.info(
            "Coordinator: finished",
            extra={"item_id": item.id, "sentiment": sentiment.label, "escalate": escalate.escalate},
        )
        return result

    async def _classify_and_remember(
        self, item: FeedbackItem, record: MemoryRecord
    ) -> RootCauseResult:
        """Classify the root cause while the memory record is appended.

        Both tasks always run to completion. If either fails, the first
        failure is raised once the other has finished.
        """
        classify = asyncio.create_task(
            self._run_stage(ROOT_CAUSE, self.root_cause.classify, item.text)
        )
        remember = asyncio.create_task(self.memory.append(item.customer_id, record))
        tasks = (classify, remember)

        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        failed = next((task for task in tasks if task in done and task.exception()), None)
        if failed is None:
            return classify.result()

        await asyncio.wait(tasks)
        # The sibling's outcome is discarded, but must still be retrieved.
        for task in tasks:
            task.exception()
        raise failed.exception()

    async def _run_stage(
        self, stage: str, func: Callable[..., Awaitable[T]], *args: Any
    ) -> T:
        """Invoke one stage, converting any error or timeout to StageFailure."""
        try:
            return await asyncio.wait_for(func(*args), timeout=self.stage_timeout)
        except StageFailure:
            raise
        except asyncio.TimeoutError as e:
            self.logger.error("Stage timed out", extra={"stage": stage})
            raise StageFailure(stage, e, context={"timeout": self.stage_timeout}) from e
        except Exception as e:
            self.logger.error("Stage failed", extra={"stage": stage, "error": str(e)})
            raise StageFailure(stage, e) from e

    def _count(self, key: str) -> None:
        """Metrics are best-effort and never affect the pipeline outcome."""
        if self.metrics is None:
            return
        try:
            self.metrics.incr(key)
        except Exception as e:
            self.logger.warning("Metrics update failed", extra={"metric": key, "error": str(e)})
