# SPDX-License-Identifier: Apache-2.0
"""Claude translation backend using LiteLLM for Anthropic access."""

from __future__ import annotations

import logging
import os
from typing import Any, ClassVar

from locale_sync.translators.base import (
    ConfigurationError,
    RateLimitedError,
    TranslationError,
    parse_retry_after,
)
from locale_sync.translators.openai import get_language_name

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    "Translate the following text from {source} to {target}. "
    "Only return the translated text, no explanations or additional comments:\n\n"
    "{text}"
)


class ClaudeTranslator:
    """Anthropic Claude translation backend.

    Requests go through ``litellm.acompletion`` with an ``anthropic/`` model
    string, so the API key is handed to LiteLLM per call and never exported
    to the process environment.

    Attributes:
        name: Backend identifier ("claude").
    """

    DEFAULT_MODEL = "claude-sonnet-4-5"
    MAX_TOKENS: ClassVar[int] = 1024

    def __init__(self, api_key: str, model: str | None = None) -> None:
        """Initialize ClaudeTranslator.

        Args:
            api_key: Anthropic API key.
            model: Model name. Priority: argument > CLAUDE_MODEL env > default.

        Raises:
            ConfigurationError: If API key is not provided.
            ImportError: If litellm is not installed.
        """
        if not api_key:
            raise ConfigurationError("Claude API key is required")

        try:
            import litellm as _litellm

            self._litellm = _litellm
        except ImportError:
            raise ImportError(
                "litellm is required for Claude backend. "
                "Install with: pip install locale-sync[claude]"
            ) from None

        self._api_key = api_key
        self._model = model or os.environ.get("CLAUDE_MODEL") or self.DEFAULT_MODEL

    @property
    def name(self) -> str:
        """Return backend name."""
        return "claude"

    @property
    def litellm_model(self) -> str:
        """Get LiteLLM model string (provider/model format)."""
        return f"anthropic/{self._model}"

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        """Translate a single text with Claude.

        Raises:
            RateLimitedError: On Anthropic rate limiting or overload.
            TranslationError: On other API failures.
            ConfigurationError: On authentication failure.
        """
        prompt = PROMPT_TEMPLATE.format(
            source=get_language_name(source_lang),
            target=get_language_name(target_lang),
            text=text,
        )

        try:
            response = await self._litellm.acompletion(
                model=self.litellm_model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.MAX_TOKENS,
                api_key=self._api_key,
            )
        except Exception as e:
            self._handle_litellm_error(e)
            raise  # Should not reach here

        content = response.choices[0].message.content
        return (content or "").strip()

    def _handle_litellm_error(self, error: Exception) -> None:
        litellm = self._litellm
        if isinstance(error, litellm.AuthenticationError):
            raise ConfigurationError("Invalid Claude API key") from error
        if isinstance(error, litellm.RateLimitError):
            raise RateLimitedError(
                "Claude rate limit exceeded",
                retry_after=self._retry_after(error),
            ) from error
        if self._is_overloaded(error):
            raise RateLimitedError(
                "Claude is overloaded",
                retry_after=self._retry_after(error),
            ) from error
        if isinstance(error, litellm.NotFoundError):
            raise ConfigurationError(
                f"Model '{self._model}' is not available. "
                f"Set CLAUDE_MODEL environment variable to use a different model."
            ) from error
        logger.debug("Claude request failed", exc_info=error)
        raise TranslationError(f"Claude translation failed: {error}") from error

    def _is_overloaded(self, error: Exception) -> bool:
        """Anthropic answers 529 "overloaded" when it sheds load."""
        litellm = self._litellm
        if isinstance(error, litellm.ServiceUnavailableError):
            return True
        if isinstance(error, litellm.InternalServerError):
            status = getattr(error, "status_code", None)
            return status == 529 or "overloaded" in str(error).lower()
        return False

    @staticmethod
    def _retry_after(error: Any) -> float | None:
        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None) or {}
        return parse_retry_after(headers.get("retry-after"))

    async def close(self) -> None:
        """LiteLLM manages its own HTTP clients."""
        return None
