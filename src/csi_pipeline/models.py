"""Data models passed between the coordinator, stores and stages."""
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SentimentLabel = Literal["negative", "neutral", "positive"]
Cause = Literal["delivery", "product_quality", "billing", "general_support"]

ANONYMOUS_CUSTOMER = "anonymous"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedbackItem(BaseModel):
    """One customer-submitted feedback report, as normalized by the collector."""
    model_config = ConfigDict(frozen=True)

    id: str
    customer_id: str = ANONYMOUS_CUSTOMER
    text: str
    source: str = "api"
    received_at: str


class Session(BaseModel):
    """Per-customer state carried across feedback items."""
    id: str
    created_at: datetime = Field(default_factory=utcnow)
    past_escalations: int = 0
    customer_name: str | None = None
    last_processed: datetime | None = None


class SentimentResult(BaseModel):
    """Heuristic sentiment score and its label."""
    model_config = ConfigDict(frozen=True)

    score: int
    label: SentimentLabel

    @classmethod
    def from_score(cls, score: int) -> "SentimentResult":
        """Build a result whose label is derived from the sign of the score."""
        if score < 0:
            label = "negative"
        elif score > 0:
            label = "positive"
        else:
            label = "neutral"
        return cls(score=score, label=label)


class MemoryRecord(BaseModel):
    """Append-only history entry for one customer."""
    model_config = ConfigDict(frozen=True)

    text: str
    sentiment: SentimentResult
    item_id: str | None = None
    ts: datetime = Field(default_factory=utcnow)


class RootCauseResult(BaseModel):
    """Inferred cause of the feedback."""
    cause: Cause = "general_support"
    confidence: float = Field(default=0.6, ge=0.0, le=1.0)


class ActionPlan(BaseModel):
    """Ordered recommended actions."""
    actions: list[str] = Field(default_factory=list)
    rationale: str


class EscalationDecision(BaseModel):
    escalate: bool
    reason: str | None = None


class ResponseDraft(BaseModel):
    """Drafted reply to the customer."""
    subject: str
    body: str
    tone: SentimentLabel


class PipelineResult(BaseModel):
    """Aggregate returned for one processed feedback item."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sentiment: SentimentResult
    root_cause: RootCauseResult
    action_plan: ActionPlan
    escalate: EscalationDecision
    response_draft: ResponseDraft
