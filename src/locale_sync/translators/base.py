# SPDX-License-Identifier: Apache-2.0
"""Base classes and protocols for translation backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class TranslatorError(Exception):
    """Base exception for translator module."""

    pass


class TranslationError(TranslatorError):
    """Error during translation (API call failure, bad response, etc.).

    This error type is potentially retryable and counts against the
    per-key retry ceiling.
    """

    pass


class EmptyTranslationError(TranslationError):
    """Provider returned an empty translation."""

    def __init__(self, text: str) -> None:
        preview = text if len(text) <= 40 else text[:37] + "..."
        super().__init__(f"Provider returned an empty translation for {preview!r}")
        self.text = text


class RateLimitedError(TranslationError):
    """Provider signalled a rate limit.

    Rate-limited attempts are retried after a shared backoff delay and do
    not consume the per-key retry budget.

    Attributes:
        retry_after: Delay in seconds suggested by the provider, if any.
    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ConfigurationError(TranslatorError):
    """Configuration error (missing API key, invalid parameters, etc.).

    This error type is NOT retryable - fix the configuration first.
    """

    pass


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header value.

    Args:
        value: Header value in seconds ("30") or milliseconds ("500ms").

    Returns:
        Delay in seconds, or None if missing or not parseable.
    """
    if not value:
        return None
    value = value.strip()
    try:
        if value.endswith("ms"):
            return max(0.0, float(value[:-2]) / 1000)
        return max(0.0, float(value))
    except ValueError:
        return None


@runtime_checkable
class TranslatorBackend(Protocol):
    """Protocol definition for translation backends.

    All translator implementations must conform to this protocol.
    """

    @property
    def name(self) -> str:
        """Backend name ("google", "deepl", "openai", "claude")."""
        ...

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        """Translate a single text.

        Args:
            text: Text to translate.
            source_lang: Source language code ("en", "ja").
            target_lang: Target language code ("en", "ja").

        Returns:
            Translated text.

        Raises:
            RateLimitedError: When the provider asks the caller to slow down.
            TranslationError: On translation failure.
            ConfigurationError: On authentication failure.
        """
        ...

    async def close(self) -> None:
        """Release network resources held by the backend."""
        ...
