"""
Free-text completion fallback, used only when no FAQ matches.

The router depends on the ``CompletionFallback`` protocol. The OpenAI
implementation bounds every call with an explicit timeout and converts
timeouts and API errors into ``CompletionError``.
"""

import asyncio
import logging
from typing import Any, Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from tappy.config import settings
from tappy.prompts.system_prompts import build_fallback_system_prompt

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Raised when the completion service fails, times out or returns nothing."""


class CompletionFallback(Protocol):
    async def complete(self, message: str, topic: Optional[str] = None) -> str: ...


class OpenAICompletion:
    """Chat completion through the OpenAI API."""

    def __init__(
        self,
        client: Optional[Any] = None,
        model: str = settings.fallback.llm_model,
        temperature: float = settings.fallback.llm_temperature,
        max_tokens: int = settings.fallback.max_tokens,
        timeout_sec: float = settings.fallback.timeout_sec,
    ) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_sec = timeout_sec

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = AsyncOpenAI()
        return self._client

    async def complete(self, message: str, topic: Optional[str] = None) -> str:
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    messages=[
                        {"role": "system", "content": build_fallback_system_prompt(topic)},
                        {"role": "user", "content": message},
                    ],
                ),
                timeout=self.timeout_sec,
            )
        except asyncio.TimeoutError:
            raise CompletionError(f"Completion timed out after {self.timeout_sec}s") from None
        except OpenAIError as exc:
            raise CompletionError(f"Completion failed: {exc}") from exc

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not content:
            raise CompletionError("Completion returned no text")
        logger.debug("Completion fallback answered (%d chars)", len(content))
        return content
