"""Normalizes incoming payloads into FeedbackItems."""
import uuid
from typing import Any

from .exceptions import ValidationError
from .models import ANONYMOUS_CUSTOMER, FeedbackItem, utcnow


def collect(payload: Any) -> FeedbackItem:
    """Validate a raw payload and fill in defaults.

    The payload must be a JSON object; only `text` is required. `id` defaults to a fresh uuid4, `customer_id`
    to the anonymous sentinel and `source` to "api"; `received_at` is always
    the current UTC time.
    """
    if not isinstance(payload, dict) or not payload:
        raise ValidationError("Missing feedback payload")

    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Missing feedback text", context={"id": payload.get("id")})

    return FeedbackItem(
        id=str(payload.get("id") or uuid.uuid4()),
        customer_id=str(payload.get("customer_id") or ANONYMOUS_CUSTOMER),
        text=text.strip(),
        source=str(payload.get("source") or "api"),
        received_at=utcnow().isoformat(),
    )
