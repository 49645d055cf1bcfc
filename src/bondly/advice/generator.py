"""Advice generation client backed by the Anthropic Messages API."""

import asyncio
import json
import logging
from typing import Awaitable, Callable

import anthropic
from anthropic import AsyncAnthropic

from bondly.config import Settings
from bondly.errors import AdviceGenerationError, QuotaExceeded

from .parsing import ADVICE_SCHEMA, AdviceContent, parse_advice
from .prompts import SYSTEM_PROMPT, Perspective, build_advice_prompt

logger = logging.getLogger(__name__)

ADVICE_TOOL_NAME = "record_advice"


def retry_after_seconds(error: anthropic.RateLimitError) -> float | None:
    """Read the server-suggested wait from a rate-limit response, if any."""
    headers = error.response.headers

    retry_after_ms = headers.get("retry-after-ms")
    if retry_after_ms is not None:
        try:
            return float(retry_after_ms) / 1000
        except ValueError:
            pass

    retry_after = headers.get("retry-after")
    if retry_after is not None:
        try:
            return float(retry_after)
        except ValueError:
            # HTTP-date form; fall back to exponential backoff
            return None
    return None


class AdviceGenerator:
    """
    Generates personalized advice for one participant.

    One HTTP call per attempt. Rate-limit responses are retried up to
    ``max_retries`` more times; everything else fails fast. Output that
    cannot be parsed never fails the call, it is replaced by canned advice.
    """

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        max_tokens: int = 1024,
        use_schema: bool = True,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        backoff_cap: float = 60.0,
        backoff_floor: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.use_schema = use_schema
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.backoff_floor = backoff_floor
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdviceGenerator":
        # The SDK's own retries are disabled; retry policy lives here
        client = AsyncAnthropic(api_key=settings.anthropic_api_key or None, max_retries=0)
        return cls(
            client,
            model=settings.anthropic_model,
            max_tokens=settings.advice_max_tokens,
            use_schema=settings.advice_use_schema,
            max_retries=settings.advice_max_retries,
            backoff_base=settings.advice_backoff_base,
            backoff_cap=settings.advice_backoff_cap,
            backoff_floor=settings.advice_backoff_floor,
        )

    def backoff_delay(self, attempt: int, suggested: float | None = None) -> float:
        """Delay before retry number ``attempt`` (0-based), clamped to [floor, cap]."""
        delay = suggested if suggested is not None else self.backoff_base * (2 ** attempt)
        return min(self.backoff_cap, max(self.backoff_floor, delay))

    def _request(self, prompt: str) -> dict:
        request = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.use_schema:
            request["tools"] = [
                {
                    "name": ADVICE_TOOL_NAME,
                    "description": "Record the personalized advice for the participant.",
                    "input_schema": ADVICE_SCHEMA,
                }
            ]
            request["tool_choice"] = {"type": "tool", "name": ADVICE_TOOL_NAME}
        return request

    @staticmethod
    def _response_text(message) -> str:
        """Collect generated text; a schema tool call is serialized back to JSON."""
        text_parts = []
        for block in message.content:
            if block.type == "tool_use" and block.name == ADVICE_TOOL_NAME:
                return json.dumps(block.input)
            if block.type == "text":
                text_parts.append(block.text)
        return "".join(text_parts)

    async def _complete(self, prompt: str) -> str:
        request = self._request(prompt)

        attempt = 0
        while True:
            try:
                message = await self.client.messages.create(**request)
                return self._response_text(message)
            except anthropic.RateLimitError as e:
                if attempt >= self.max_retries:
                    logger.error("Advice generation rate limited, giving up after %d attempts", attempt + 1)
                    raise QuotaExceeded(
                        "The AI service has reached its limit. Your responses are saved; please try again later."
                    ) from e
                delay = self.backoff_delay(attempt, retry_after_seconds(e))
                logger.warning(
                    "Advice generation rate limited (attempt %d/%d), retrying in %.1fs",
                    attempt + 1,
                    self.max_retries + 1,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1
            except anthropic.APIError as e:
                logger.error("Advice generation failed: %s", e)
                raise AdviceGenerationError("Failed to generate advice") from e

    async def generate(self, recipient: Perspective, counterpart: Perspective) -> AdviceContent:
        """
        Generate advice addressed to ``recipient``, using ``counterpart`` as context.

        Raises:
            QuotaExceeded: rate limited on every attempt
            AdviceGenerationError: any other API failure
        """
        prompt = build_advice_prompt(recipient, counterpart)
        text = await self._complete(prompt)
        return parse_advice(text)

    async def close(self) -> None:
        await self.client.close()
