"""Resilient access to the remote chat-completion endpoint.

:class:`ResilientCaller` wraps a single OpenAI-compatible chat request with a
:class:`RetryPolicy`.  Transport errors, non-success statuses, timeouts and
empty completions all count as failed attempts; after the last attempt the
caller returns ``None`` instead of raising so the stage that asked for the
text can decide how to report the failure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

LOGGER = logging.getLogger(__name__)

ChatMessage = Dict[str, str]
SleepFunc = Callable[[float], Awaitable[Any]]

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.25


class GenerationUnavailableError(RuntimeError):
    """Raised when the remote generator cannot be configured."""


class EmptyCompletionError(RuntimeError):
    """Raised inside an attempt when the endpoint answers without any text."""


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded attempts with exponential backoff between them."""

    max_attempts: int = 6
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` (1-based)."""

        return self.base_delay * 2 ** (attempt - 1)

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.delay_for(retry_state.attempt_number)

    def retrying(self, *, sleep: SleepFunc, after: Callable[[RetryCallState], None]) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type((OpenAIError, EmptyCompletionError)),
            after=after,
            retry_error_callback=lambda _state: None,
            sleep=sleep,
        )


@dataclass
class ResilientCaller:
    client: Any
    model: str = "deepseek-chat"
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: SleepFunc = asyncio.sleep

    async def call(
        self,
        messages: Sequence[ChatMessage],
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> Optional[str]:
        """Return the first non-empty completion, or ``None`` once every attempt failed."""

        retrying = self.policy.retrying(sleep=self.sleep, after=self._log_failed_attempt)
        return await retrying(self._complete, list(messages), max_tokens, temperature)

    async def aclose(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "ResilientCaller":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def _complete(self, messages: List[ChatMessage], max_tokens: int, temperature: float) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=int(max_tokens),
            temperature=float(temperature),
        )
        text = _extract_text_from_chat(response).strip()
        if not text:
            raise EmptyCompletionError("Chat completion returned no text.")
        return text

    def _log_failed_attempt(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        cause = outcome.exception() if outcome is not None else None
        LOGGER.warning(
            "Remote generation attempt %d/%d failed: %s",
            retry_state.attempt_number,
            self.policy.max_attempts,
            cause,
        )


def _extract_text_from_chat(resp: Any) -> str:
    choices = getattr(resp, "choices", []) or []
    if not choices:
        return ""
    first = choices[0]
    msg = getattr(first, "message", None)
    if isinstance(msg, dict):
        content = msg.get("content")
    else:
        content = getattr(msg, "content", None)
    if isinstance(content, list):
        parts: List[str] = []
        for p in content:
            if isinstance(p, dict) and p.get("type") == "text":
                parts.append(str(p.get("text") or ""))
        return "\n".join([p for p in parts if p])
    return str(content or "")


def build_remote_caller(config: Mapping[str, Any]) -> ResilientCaller:
    """Create a caller for the endpoint described by the Flask ``config``."""

    api_key = (config.get("DEEPSEEK_API_KEY") or "").strip()
    if not api_key:
        raise GenerationUnavailableError("DEEPSEEK_API_KEY is not configured.")

    # The SDK's own retries are disabled; RetryPolicy is the only retry layer.
    client = AsyncOpenAI(
        api_key=api_key,
        base_url=config.get("DEEPSEEK_BASE_URL") or None,
        timeout=float(config.get("GENERATION_TIMEOUT") or 90),
        max_retries=0,
    )
    policy = RetryPolicy(
        max_attempts=int(config.get("GENERATION_MAX_ATTEMPTS") or 6),
        base_delay=float(config.get("GENERATION_BASE_DELAY", 1.0)),
    )
    return ResilientCaller(client=client, model=config.get("DEEPSEEK_MODEL") or "deepseek-chat", policy=policy)
