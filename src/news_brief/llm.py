"""Language model client.

通过 OpenRouter (OpenAI 兼容接口) 调用模型。
Non-streaming completions only; callers own their fallbacks, this module
only guarantees that anything other than usable text becomes an LlmError.
"""

import asyncio
import logging

from openai import AsyncOpenAI

from .config import LlmConfig, Settings
from .errors import LlmError

logger = logging.getLogger(__name__)


def _extract_content(response) -> str:
    """Classify a chat completion: text, recognized error, or unknown shape."""
    # OpenRouter 可能在响应体中返回错误而非 HTTP 状态码
    error = getattr(response, "error", None)
    if error:
        err_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
        err_code = error.get("code", "unknown") if isinstance(error, dict) else "unknown"
        raise LlmError(f"OpenRouter returned error (code={err_code}): {err_msg}")

    choices = getattr(response, "choices", None)
    if not choices:
        raise LlmError("LLM returned no choices")

    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) or ""
    if not isinstance(content, str):
        raise LlmError(f"LLM returned unexpected content type {type(content).__name__}")

    # Reasoning models may only fill reasoning_content
    if not content:
        reasoning = getattr(message, "reasoning_content", None)
        if isinstance(reasoning, str) and reasoning:
            logger.warning("LLM returned reasoning_content but no content, using reasoning")
            content = reasoning

    if not content.strip():
        raise LlmError("LLM returned empty content")

    return content


class LlmClient:
    """Thin async wrapper: ``complete(prompt, max_tokens, temperature) -> str``."""

    def __init__(self, config: LlmConfig, settings: Settings) -> None:
        self.config = config
        self._api_key = settings.openrouter_api_key
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if not self._api_key:
            raise LlmError("OPENROUTER_API_KEY is required. Get one at https://openrouter.ai/keys")
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self.config.base_url,
                max_retries=self.config.max_retries,
            )
        return self._client

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        model: str | None = None,
    ) -> str:
        """Single-turn completion. Every failure mode raises LlmError."""
        client = self._get_client()
        kwargs: dict = {
            "model": model or self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(**kwargs),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError as e:
            raise LlmError(f"LLM call timed out after {self.config.timeout}s") from e
        except Exception as e:
            raise LlmError(f"LLM call failed: {e}") from e

        return _extract_content(response)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
