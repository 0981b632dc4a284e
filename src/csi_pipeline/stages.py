"""Analysis stages: one single-method protocol per stage, plus implementations.

Heuristic stages are keyword rules. The LLM* stages implement the same
protocols on top of APIClient, so the coordinator never knows which is in use.
None of the stages touch the session store or memory log.
"""
import logging
from typing import Protocol

from .cache import FileCache, text_key
from .client import APIClient, parse_json
from .models import (
    ActionPlan,
    EscalationDecision,
    ResponseDraft,
    RootCauseResult,
    SentimentResult,
    Session,
)
from .observability import get_logger
from .prompts import REPLY_PROMPT, ROOT_CAUSE_PROMPT, SENTIMENT_PROMPT

SENTIMENT = "sentiment"
ROOT_CAUSE = "root_cause"
ACTION_PLANNER = "action_planner"
ESCALATION = "escalation"
REPLY_DRAFTER = "reply_drafter"

NEGATIVE_TERMS = ("not", "never", "bad", "late", "damag")
POSITIVE_TERMS = ("love", "great", "good", "thanks")

# Checked in order; the first rule with a matching term wins.
ROOT_CAUSE_RULES = (
    ("delivery", ("late", "delivery", "shipping"), 0.85),
    ("product_quality", ("damag", "broken", "scratch"), 0.9),
    ("billing", ("refund", "charge", "billing"), 0.8),
)

ESCALATION_CONFIDENCE = 0.8


class SentimentAnalyzer(Protocol):
    async def analyze(self, text: str) -> SentimentResult:
        ...


class RootCauseClassifier(Protocol):
    async def classify(self, text: str) -> RootCauseResult:
        ...


class ActionPlanner(Protocol):
    async def plan(
        self, sentiment: SentimentResult, root_cause: RootCauseResult, session: Session
    ) -> ActionPlan:
        ...


class EscalationEvaluator(Protocol):
    async def evaluate(
        self, sentiment: SentimentResult, root_cause: RootCauseResult
    ) -> EscalationDecision:
        ...


class ReplyDrafter(Protocol):
    async def draft(
        self, text: str, sentiment: SentimentResult, action_plan: ActionPlan, session: Session
    ) -> ResponseDraft:
        ...


class KeywordSentimentAnalyzer:
    """-1 for any negative term, +1 for any positive term."""

    def __init__(self, logger: logging.LoggerAdapter | None = None):
        self.logger = logger or get_logger(__name__)

    async def analyze(self, text: str) -> SentimentResult:
        self.logger.info("SentimentAnalyzer: analyzing text")
        lower = text.lower()
        score = 0
        if any(term in lower for term in NEGATIVE_TERMS):
            score -= 1
        if any(term in lower for term in POSITIVE_TERMS):
            score += 1
        return SentimentResult.from_score(score)


class KeywordRootCauseClassifier:
    def __init__(self, logger: logging.LoggerAdapter | None = None):
        self.logger = logger or get_logger(__name__)

    async def classify(self, text: str) -> RootCauseResult:
        self.logger.info("RootCauseClassifier: identifying root cause")
        lower = text.lower()
        for cause, terms, confidence in ROOT_CAUSE_RULES:
            if any(term in lower for term in terms):
                return RootCauseResult(cause=cause, confidence=confidence)
        return RootCauseResult()


class RuleBasedActionPlanner:
    def __init__(self, logger: logging.LoggerAdapter | None = None):
        self.logger = logger or get_logger(__name__)

    async def plan(
        self, sentiment: SentimentResult, root_cause: RootCauseResult, session: Session
    ) -> ActionPlan:
        self.logger.info("ActionPlanner: creating action plan")
        actions = []
        if root_cause.cause == "delivery":
            actions.append("offer_refund_or_redelivery")
        if root_cause.cause == "product_quality":
            actions.append("initiate_replacement")
        if sentiment.label == "negative":
            actions.append("priority_support_routing")
        if session is not None and session.past_escalations > 0:
            actions.append("apply_loyalty_compensation")

        return ActionPlan(
            actions=actions,
            rationale=f"Actions based on cause={root_cause.cause} and sentiment={sentiment.label}",
        )


class RuleBasedEscalationEvaluator:
    """Escalates confident negatives and negative billing issues."""

    def __init__(self, logger: logging.LoggerAdapter | None = None):
        self.logger = logger or get_logger(__name__)

    async def evaluate(
        self, sentiment: SentimentResult, root_cause: RootCauseResult
    ) -> EscalationDecision:
        self.logger.info("EscalationEvaluator: checking rules")
        if sentiment.label == "negative" and root_cause.confidence > ESCALATION_CONFIDENCE:
            return EscalationDecision(escalate=True, reason="high_confidence_negative")
        if root_cause.cause == "billing" and sentiment.label == "negative":
            return EscalationDecision(escalate=True, reason="billing_issue")
        return EscalationDecision(escalate=False)


def greeting_for(session: Session | None) -> str:
    if session is not None and session.customer_name:
        return f"Hi {session.customer_name},"
    return "Hello,"


class TemplateReplyDrafter:
    """Fills a fixed reply template from the plan and sentiment."""

    def __init__(self, support_team: str = "Acme Support", logger: logging.LoggerAdapter | None = None):
        self.support_team = support_team
        self.logger = logger or get_logger(__name__)

    async def draft(
        self, text: str, sentiment: SentimentResult, action_plan: ActionPlan, session: Session
    ) -> ResponseDraft:
        self.logger.info("ReplyDrafter: drafting reply")
        if sentiment.label == "negative":
            opening = "We're sorry to hear about your experience."
        else:
            opening = "Thanks for the feedback!"

        body = (
            f"{greeting_for(session)} {opening} "
            f"We detected the issue as: {action_plan.rationale}. "
            f"Our recommended actions: {', '.join(action_plan.actions)}. "
            "We will follow up within 48 hours."
        )
        return ResponseDraft(
            subject=f"Response from {self.support_team}",
            body=body,
            tone=sentiment.label,
        )


class LLMSentimentAnalyzer:
    """Model-scored sentiment; the label is always re-derived from the score."""

    def __init__(
        self,
        api: APIClient,
        cache: FileCache | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.api = api
        self.cache = cache
        self.logger = logger or get_logger(__name__)

    async def analyze(self, text: str) -> SentimentResult:
        key = text_key(SENTIMENT, text)
        if self.cache is not None:
            cached = self.cache.get(key, SentimentResult.model_validate_json)
            if cached:
                return cached

        self.logger.info("LLMSentimentAnalyzer: calling model")
        content = await self.api.call(SENTIMENT_PROMPT.format(text=text), max_tokens=64)
        data = parse_json(content)
        result = SentimentResult.from_score(int(data.get("score", 0)))

        if self.cache is not None:
            self.cache.save(key, result, lambda obj: obj.model_dump_json(indent=2))
        return result


class LLMRootCauseClassifier:
    def __init__(
        self,
        api: APIClient,
        cache: FileCache | None = None,
        logger: logging.LoggerAdapter | None = None,
    ):
        self.api = api
        self.cache = cache
        self.logger = logger or get_logger(__name__)

    async def classify(self, text: str) -> RootCauseResult:
        key = text_key(ROOT_CAUSE, text)
        if self.cache is not None:
            cached = self.cache.get(key, RootCauseResult.model_validate_json)
            if cached:
                return cached

        self.logger.info("LLMRootCauseClassifier: calling model")
        content = await self.api.call(ROOT_CAUSE_PROMPT.format(text=text), max_tokens=128)
        result = self._normalize(parse_json(content))

        if self.cache is not None:
            self.cache.save(key, result, lambda obj: obj.model_dump_json(indent=2))
        return result

    @staticmethod
    def _normalize(data: dict) -> RootCauseResult:
        """Coerce model output into a valid result."""
        known = {cause for cause, _, _ in ROOT_CAUSE_RULES}
        cause = str(data.get("cause", "")).strip().lower()
        if cause not in known:
            return RootCauseResult()
        try:
            confidence = float(data.get("confidence", 0.6))
        except (TypeError, ValueError):
            confidence = 0.6
        return RootCauseResult(cause=cause, confidence=min(max(confidence, 0.0), 1.0))


class LLMReplyDrafter:
    def __init__(
        self,
        api: APIClient,
        support_team: str = "Acme Support",
        logger: logging.LoggerAdapter | None = None,
    ):
        self.api = api
        self.support_team = support_team
        self.logger = logger or get_logger(__name__)

    async def draft(
        self, text: str, sentiment: SentimentResult, action_plan: ActionPlan, session: Session
    ) -> ResponseDraft:
        self.logger.info("LLMReplyDrafter: calling model")
        prompt = REPLY_PROMPT.format(
            text=text,
            customer_name=(session.customer_name if session else None) or "unknown",
            label=sentiment.label,
            actions=", ".join(action_plan.actions) or "none",
            rationale=action_plan.rationale,
            greeting=greeting_for(session),
            support_team=self.support_team,
        )
        content = await self.api.call(prompt, max_tokens=1024)
        body = parse_json(content).get("body")
        if not isinstance(body, str) or not body.strip():
            raise ValueError("Model reply did not contain a body")

        return ResponseDraft(
            subject=f"Response from {self.support_team}",
            body=body.strip(),
            tone=sentiment.label,
        )
