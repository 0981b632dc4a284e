"""Prompt templates."""

SENTIMENT_PROMPT = """Rate the sentiment of this customer feedback:

{text}

Extract JSON with: score (integer: -1 negative, 0 neutral, 1 positive)

Return ONLY valid JSON."""


ROOT_CAUSE_PROMPT = """Identify the root cause of this customer feedback:

{text}

Extract JSON with: cause, confidence (number between 0 and 1)

Causes: delivery, product_quality, billing, general_support
Use general_support when nothing else fits.

Return ONLY valid JSON."""


REPLY_PROMPT = """Draft a short support email replying to this customer feedback.

Feedback:
{text}

Customer name: {customer_name}
Detected sentiment: {label}
Planned actions: {actions}
Rationale: {rationale}

Guidelines:
- Open with "{greeting}"
- Apologize if the sentiment is negative, otherwise thank the customer
- Mention the planned actions in plain language
- Promise a follow-up within 48 hours
- Sign as {support_team}

Generate JSON with: body

Return ONLY valid JSON."""
