"""
Pytest configuration and shared fixtures for the feedback pipeline tests.

This module provides:
- Store fixtures (session store, memory log)
- A coordinator wired with the heuristic stages
- Feedback item factories
- A fake Anthropic client for the model-backed stages
"""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from csi_pipeline.models import FeedbackItem, utcnow
from csi_pipeline.observability import Metrics, get_logger
from csi_pipeline.orchestrator import Coordinator
from csi_pipeline.stages import (
    KeywordRootCauseClassifier,
    KeywordSentimentAnalyzer,
    RuleBasedActionPlanner,
    RuleBasedEscalationEvaluator,
    TemplateReplyDrafter,
)
from csi_pipeline.store import MemoryLog, SessionStore

# ============================================================================
# STORE FIXTURES
# ============================================================================


@pytest.fixture
def sessions() -> SessionStore:
    return SessionStore()


@pytest.fixture
def memory() -> MemoryLog:
    return MemoryLog()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


# ============================================================================
# COORDINATOR FIXTURES
# ============================================================================


def build_coordinator(sessions, memory, metrics=None, **overrides) -> Coordinator:
    """Coordinator with heuristic stages; any stage can be overridden."""
    logger = get_logger("csi_pipeline.tests")
    stages = {
        "sentiment": KeywordSentimentAnalyzer(logger=logger),
        "root_cause": KeywordRootCauseClassifier(logger=logger),
        "planner": RuleBasedActionPlanner(logger=logger),
        "escalation": RuleBasedEscalationEvaluator(logger=logger),
        "drafter": TemplateReplyDrafter(logger=logger),
    }
    stage_timeout = overrides.pop("stage_timeout", 5.0)
    stages.update(overrides)
    return Coordinator(
        sessions=sessions,
        memory=memory,
        logger=logger,
        metrics=metrics,
        stage_timeout=stage_timeout,
        **stages,
    )


@pytest.fixture
def coordinator(sessions, memory, metrics) -> Coordinator:
    return build_coordinator(sessions, memory, metrics)


# ============================================================================
# DATA FACTORIES
# ============================================================================


def make_item(text: str = "My package arrived late and damaged", customer_id: str = "c123", **kwargs) -> FeedbackItem:
    return FeedbackItem(
        id=kwargs.pop("id", str(uuid.uuid4())),
        customer_id=customer_id,
        text=text,
        source=kwargs.pop("source", "api"),
        received_at=kwargs.pop("received_at", utcnow().isoformat()),
    )


# ============================================================================
# TEST DOUBLES
# ============================================================================


class SlowStage:
    """Wraps a stage method with an injected delay."""

    def __init__(self, inner, method: str, delay: float):
        self.inner = inner
        self.delay = delay
        setattr(self, method, self._call(getattr(inner, method)))

    def _call(self, func):
        async def wrapper(*args):
            await asyncio.sleep(self.delay)
            return await func(*args)
        return wrapper


class FailingStage:
    """Stage whose single method always raises."""

    def __init__(self, method: str, error: Exception):
        self.calls = 0

        async def fail(*args):
            self.calls += 1
            raise error

        setattr(self, method, fail)


class SlowMemoryLog(MemoryLog):
    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    async def append(self, customer_id, record):
        await asyncio.sleep(self.delay)
        await super().append(customer_id, record)


@pytest.fixture
def fake_api():
    """Stand-in for APIClient: `call` returns whatever the test queues."""
    api = AsyncMock()
    api.call = AsyncMock()
    return api
