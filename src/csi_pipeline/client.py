"""Anthropic API client used by the model-backed stages."""
import asyncio
import json
import logging

from anthropic import AsyncAnthropic

from .exceptions import ConfigurationError
from .observability import get_logger


class APIClient:
    """Wrapper around Anthropic API with retry and timeout handling.

    `timeout` bounds each attempt; attempt n (from 0) that fails is followed
    by a sleep of `backoff * 2**n` seconds, except after the last attempt.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "claude-haiku-4-5",
        max_retries: int = 3,
        timeout: float = 60.0,
        backoff: float = 1.0,
        logger: logging.LoggerAdapter | None = None,
    ):
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY is required for the llm analyzer backend")
        self.client = AsyncAnthropic(api_key=api_key)
        self.model = model
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff = backoff
        self.logger = logger or get_logger(__name__)

    async def call(self, prompt: str, max_tokens: int = 512) -> str:
        """Call the API, retrying with exponential backoff."""
        for attempt in range(self.max_retries):
            try:
                response = await asyncio.wait_for(
                    self.client.messages.create(
                        model=self.model,
                        max_tokens=max_tokens,
                        messages=[{"role": "user", "content": prompt}]
                    ),
                    timeout=self.timeout
                )
                return response.content[0].text.strip()
            except Exception as e:
                if attempt == self.max_retries - 1:
                    raise
                self.logger.warning(
                    "API call failed, retrying",
                    extra={"attempt": attempt + 1, "error": str(e) or type(e).__name__},
                )
                await asyncio.sleep(self.backoff * 2 ** attempt)
        raise RuntimeError("unreachable")


def parse_json(content: str) -> dict:
    """Parse a JSON object from model output.

    Handles ```json fenced blocks and trailing prose after the closing brace.
    """
    content = content.strip()
    if content.startswith("```"):
        content = content.strip("`").strip()
        if content[:4].lower() == "json":
            content = content[4:].strip()

    start = content.find("{")
    if start < 0:
        raise json.JSONDecodeError("No JSON object in model output", content, 0)

    decoder = json.JSONDecoder()
    data, _ = decoder.raw_decode(content[start:])
    if not isinstance(data, dict):
        raise json.JSONDecodeError("Expected a JSON object", content, start)
    return data
