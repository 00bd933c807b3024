# SPDX-License-Identifier: Apache-2.0
"""OpenAI GPT translation backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from locale_sync.translators.base import (
    ConfigurationError,
    RateLimitedError,
    TranslationError,
    parse_retry_after,
)

if TYPE_CHECKING:
    from openai import AsyncOpenAI


# Language code to full name mapping for prompts
LANGUAGE_NAMES = {
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "pt": "Portuguese",
    "ru": "Russian",
    "zh": "Chinese",
}

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional translator. Translate the given user interface "
    "string accurately while preserving placeholders, markup and tone. "
    "Return only the translation without any explanations."
)


def get_language_name(lang_code: str) -> str:
    """Convert language code to full name.

    Unknown codes are returned unchanged so the model still sees them.
    """
    return LANGUAGE_NAMES.get(lang_code.lower(), lang_code)


class OpenAITranslator:
    """OpenAI GPT translation backend.

    This backend uses OpenAI's GPT models with Structured Outputs
    so the reply always carries exactly one translation field.

    Attributes:
        name: Backend identifier ("openai").
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize OpenAITranslator.

        Args:
            api_key: OpenAI API key.
            model: Model to use. Priority: argument > OPENAI_MODEL env > default.
            system_prompt: Custom system prompt for translation.

        Raises:
            ConfigurationError: If API key is not provided.
            ImportError: If openai package is not installed.
        """
        import os

        if not api_key:
            raise ConfigurationError("OpenAI API key is required")

        # Lazy import openai and pydantic
        try:
            from openai import AsyncOpenAI as _AsyncOpenAI

            self._AsyncOpenAI = _AsyncOpenAI
        except ImportError:
            raise ImportError(
                "openai is required for OpenAI backend. "
                "Install with: pip install locale-sync[openai]"
            ) from None

        try:
            from pydantic import BaseModel as _BaseModel

            class TranslationResult(_BaseModel):
                translation: str

            self._TranslationResult = TranslationResult
        except ImportError:
            raise ImportError(
                "pydantic is required for OpenAI backend. "
                "Install with: pip install locale-sync[openai]"
            ) from None

        self._api_key = api_key
        env_model = os.environ.get("OPENAI_MODEL")
        self._model = model or env_model or self.DEFAULT_MODEL
        self._system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self._client: AsyncOpenAI | None = None

    @property
    def name(self) -> str:
        """Return backend name."""
        return "openai"

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = self._AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        """Translate a single text using OpenAI Structured Outputs.

        Args:
            text: Text to translate.
            source_lang: Source language code.
            target_lang: Target language code.

        Returns:
            Translated text (whitespace-trimmed).

        Raises:
            RateLimitedError: On OpenAI rate limiting.
            TranslationError: On translation failure.
            ConfigurationError: On authentication failure.
        """
        client = self._ensure_client()

        user_content = (
            f"Translate the following text from {get_language_name(source_lang)} "
            f"to {get_language_name(target_lang)}:\n\n{text}"
        )

        try:
            response = await client.chat.completions.parse(
                model=self._model,
                messages=[
                    {"role": "system", "content": self._system_prompt},
                    {"role": "user", "content": user_content},
                ],
                response_format=self._TranslationResult,
                temperature=0.3,
            )
        except self._get_openai_errors() as e:
            self._handle_openai_error(e)
            raise  # Should not reach here

        result = response.choices[0].message.parsed
        if result is None:
            raise TranslationError("OpenAI returned empty response")
        return str(result.translation).strip()

    def _get_openai_errors(self) -> tuple[type[Exception], ...]:
        """Get OpenAI exception types for error handling.

        Catches OpenAIError (base class) to handle all API errors including
        AuthenticationError, RateLimitError, BadRequestError and
        APIConnectionError.
        """
        try:
            from openai import OpenAIError

            return (OpenAIError,)
        except ImportError:
            return (Exception,)

    def _handle_openai_error(self, error: Any) -> None:
        """Map OpenAI API errors onto the translator error hierarchy.

        Raises:
            ConfigurationError: On authentication or model access failure.
            RateLimitedError: On rate limiting.
            TranslationError: On other API errors.
        """
        try:
            from openai import AuthenticationError, NotFoundError, RateLimitError
        except ImportError:
            raise TranslationError(f"OpenAI API error: {error}") from error

        if isinstance(error, AuthenticationError):
            raise ConfigurationError("Invalid OpenAI API key") from error
        elif isinstance(error, RateLimitError):
            response = getattr(error, "response", None)
            headers = getattr(response, "headers", None) or {}
            raise RateLimitedError(
                "OpenAI rate limit exceeded",
                retry_after=parse_retry_after(headers.get("retry-after")),
            ) from error
        elif isinstance(error, NotFoundError):
            raise ConfigurationError(
                f"Model '{self._model}' is not available. "
                f"Set OPENAI_MODEL environment variable to use a different model "
                f"(e.g., 'gpt-4o-mini', 'gpt-4o')."
            ) from error

        raise TranslationError(f"OpenAI API error: {error}") from error

    async def close(self) -> None:
        """Close the OpenAI client."""
        if self._client:
            await self._client.close()
            self._client = None
