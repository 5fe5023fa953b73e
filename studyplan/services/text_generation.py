"""Text generation over the Anthropic API with a bounded wait."""

import asyncio
import logging

from anthropic import (
    AnthropicError,
    APIConnectionError,
    APIStatusError,
    AsyncAnthropic,
    RateLimitError,
)

from studyplan.config import get_settings
from studyplan.errors import GenerationUnavailable

logger = logging.getLogger(__name__)
settings = get_settings()

# Transient error types that warrant retrying
_RETRYABLE_ERRORS = (APIConnectionError, RateLimitError)


async def _retry_anthropic(coro_factory, *, max_attempts: int = 3, base_delay: float = 1.0):
    """
    Retry an Anthropic API call with exponential backoff.

    Args:
        coro_factory: Callable that returns a new coroutine each invocation.
        max_attempts: Maximum number of attempts.
        base_delay: Base delay in seconds (doubles each retry).

    Returns:
        The result of the coroutine.
    """
    for attempt in range(max_attempts):
        try:
            return await coro_factory()
        except _RETRYABLE_ERRORS as e:
            if attempt == max_attempts - 1:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Anthropic API transient error (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1, max_attempts, delay, str(e),
            )
            await asyncio.sleep(delay)
        except APIStatusError as e:
            # 529 is "overloaded"; every other status is final
            if e.status_code != 529 or attempt == max_attempts - 1:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Anthropic API overloaded (attempt %d/%d), retrying in %.1fs",
                attempt + 1, max_attempts, delay,
            )
            await asyncio.sleep(delay)


class TextGenerator:
    """
    Turn-based text generation.

    ``generate`` takes chat turns as ``{"role", "content"}`` dicts. System turns
    are joined into the system prompt. Any failure, including the overall
    timeout, surfaces as GenerationUnavailable so callers can fall back.
    """

    def __init__(self, api_key: str | None = None, model: str | None = None):
        self.api_key = settings.anthropic_api_key if api_key is None else api_key
        self.model = model or settings.llm_model
        self._client: AsyncAnthropic | None = None

    @property
    def client(self) -> AsyncAnthropic:
        if not self.api_key:
            raise GenerationUnavailable("Text generation is not configured")
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        turns: list[dict],
        *,
        max_tokens: int,
        temperature: float = 0.7,
        timeout: float | None = None,
    ) -> str:
        system_prompt = "\n\n".join(t["content"] for t in turns if t["role"] == "system")
        messages = [
            {"role": t["role"], "content": t["content"]}
            for t in turns
            if t["role"] != "system"
        ]
        if not messages:
            raise GenerationUnavailable("No user turn to respond to")

        client = self.client
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            message = await asyncio.wait_for(
                _retry_anthropic(lambda: client.messages.create(**kwargs)),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationUnavailable(f"Text generation timed out after {timeout}s") from e
        except AnthropicError as e:
            raise GenerationUnavailable(f"Text generation failed: {e}") from e

        text = "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise GenerationUnavailable("Text generation returned no text")
        return text


# Singleton instance
text_generator = TextGenerator()
