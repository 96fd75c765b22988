"""Provider access shared by every backend adapter.

``LLMClient`` sends one chat completion through LiteLLM and retries the
provider errors worth retrying. ``MockLLMClient`` replays a script instead,
which is how tests stand in for real providers. ``extract_json_from_response``
pulls the JSON records the judge embeds in its prose.
"""

import asyncio
import json
import re
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog
from litellm import ModelResponse, acompletion
from litellm.exceptions import (
    AuthenticationError,
    BadRequestError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)
from pydantic import BaseModel

from config import settings

logger = structlog.get_logger(__name__)

# Provider errors that may succeed on a later attempt.
RETRYABLE_ERRORS = (RateLimitError, ServiceUnavailableError, Timeout)
# Provider errors no retry can fix.
FATAL_ERRORS = (AuthenticationError, BadRequestError)

MAX_BACKOFF_SECONDS = 4.0

_JSON_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class CallUsage(BaseModel):
    """Token counts and latency of one completion.

    Attributes:
        model: LiteLLM model id the call went to
        input_tokens: Prompt tokens reported by the provider
        output_tokens: Completion tokens reported by the provider
        latency_ms: Wall-clock time across all attempts
    """

    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Reply text of one completion with its usage."""

    content: str
    finish_reason: str
    usage: CallUsage
    raw_response: ModelResponse | None = field(default=None, repr=False)


class LLMClient:
    """Chat completions through LiteLLM with bounded retries.

    A single client is shared by every adapter and keeps no per-call state.

    Attributes:
        retry_attempts: Attempts allowed after the first one
        retry_delay: Backoff base in seconds, doubled on every retry
    """

    def __init__(
        self,
        retry_attempts: int | None = None,
        retry_delay: float = 1.0,
    ) -> None:
        self.retry_attempts = (
            settings.llm_max_retries if retry_attempts is None else retry_attempts
        )
        self.retry_delay = retry_delay

    def backoff(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (counted from 0)."""
        return min(self.retry_delay * 2**retry, MAX_BACKOFF_SECONDS)

    async def call(
        self,
        messages: list[dict[str, Any]],
        model: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> LLMResponse:
        """Send one completion request.

        Rate limits, unavailable services and provider timeouts are retried up
        to ``retry_attempts`` times. Authentication and bad-request errors are
        raised on the first occurrence.

        Args:
            messages: Ordered ``{"role", "content"}`` messages
            model: Provider-prefixed LiteLLM model id
            temperature: Sampling temperature
            max_tokens: Reply token limit, if any
            api_key: Credential handed to LiteLLM
            timeout: Per-request timeout handed to the provider SDK

        Returns:
            LLMResponse with the reply text and usage.

        Raises:
            AuthenticationError: The credential was rejected.
            BadRequestError: The provider rejected the request.
            RateLimitError: Still rate limited after the last retry.
            ServiceUnavailableError: Still unavailable after the last retry.
            Timeout: The last attempt timed out.
        """
        request: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            request["max_tokens"] = max_tokens
        if api_key:
            request["api_key"] = api_key
        if timeout:
            request["timeout"] = timeout

        started = time.monotonic()
        attempt = 0
        while True:
            attempt += 1
            try:
                raw = await self._make_request(request)
                break
            except FATAL_ERRORS as e:
                logger.error(
                    "llm_call_rejected",
                    model=model,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise
            except RETRYABLE_ERRORS as e:
                if attempt > self.retry_attempts:
                    logger.error(
                        "llm_call_exhausted",
                        model=model,
                        attempts=attempt,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    raise
                delay = self.backoff(attempt - 1)
                logger.warning(
                    "llm_call_retry",
                    model=model,
                    attempt=attempt,
                    retry_delay=delay,
                    error_type=type(e).__name__,
                )
                await self._async_sleep(delay)

        response = self._to_response(raw, model, int((time.monotonic() - started) * 1000))
        logger.info(
            "llm_call_complete",
            model=model,
            attempt=attempt,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=response.usage.latency_ms,
        )
        return response

    async def _make_request(self, request: dict[str, Any]) -> ModelResponse:
        return await acompletion(**request)

    async def _async_sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    @staticmethod
    def _to_response(raw: ModelResponse, model: str, latency_ms: int) -> LLMResponse:
        choice = raw.choices[0]
        usage = getattr(raw, "usage", None)
        return LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "unknown",
            usage=CallUsage(
                model=model,
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
                latency_ms=latency_ms,
            ),
            raw_response=raw,
        )


# ---------------------------------------------------------------------------
# JSON in model prose
# ---------------------------------------------------------------------------


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield every brace-balanced ``{...}`` substring, ordered by start."""
    for start, opening in enumerate(text):
        if opening != "{":
            continue

        depth = 0
        quoted = False
        escape = False
        for index in range(start, len(text)):
            char = text[index]
            if quoted:
                if escape:
                    escape = False
                elif char == "\\":
                    escape = True
                elif char == '"':
                    quoted = False
            elif char == '"':
                quoted = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    yield text[start : index + 1]
                    break


def _json_candidates(text: str) -> Iterator[str]:
    # Whole reply first, then fenced bodies, then any embedded object.
    yield text.strip()
    for match in _JSON_FENCE.finditer(text):
        body = match.group(1).strip()
        yield body
        yield from _balanced_objects(body)
    yield from _balanced_objects(text)


def extract_json_from_response(response: str) -> dict[str, Any] | None:
    """Decode the first JSON object found in a model reply.

    Args:
        response: Reply text, possibly with prose around the JSON

    Returns:
        The decoded object, or None if the reply holds no JSON object.
    """
    for candidate in _json_candidates(response):
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            return decoded
    return None


class MockLLMClient(LLMClient):
    """Replays scripted replies instead of calling a provider.

    Entries of ``responses`` are consumed in order. An ``Exception`` entry is
    raised rather than returned, so tests can script provider failures.
    Every call is recorded in ``call_history``.

    Usage:
        >>> client = MockLLMClient(responses=["```tsx\\nfunction App() {}\\n```"])
        >>> reply = await client.call(messages=[...], model="openai/gpt-4o")
    """

    def __init__(
        self,
        responses: list[str | Exception] | None = None,
        delay_seconds: float = 0.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.responses: list[str | Exception] = list(responses or [])
        self.delay_seconds = delay_seconds
        self.call_history: list[dict[str, Any]] = []
        self._cursor = 0

    async def call(
        self,
        messages: list[dict[str, Any]],
        model: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> LLMResponse:
        """Return or raise the next scripted entry.

        Raises:
            IndexError: When the script is exhausted.
        """
        self.call_history.append(
            {
                "messages": messages,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )

        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if self._cursor >= len(self.responses):
            raise IndexError(f"Script exhausted after {self._cursor} replies")

        entry = self.responses[self._cursor]
        self._cursor += 1
        if isinstance(entry, Exception):
            raise entry

        logger.debug("mock_llm_reply", model=model, index=self._cursor - 1, chars=len(entry))
        return LLMResponse(content=entry, finish_reason="stop", usage=CallUsage(model=model))

    def reset(self) -> None:
        """Replay the script from the start and forget recorded calls."""
        self._cursor = 0
        self.call_history.clear()
