# SPDX-License-Identifier: Apache-2.0
"""Google Translate backend using deep-translator."""

import asyncio

from deep_translator import GoogleTranslator as DeepGoogleTranslator  # type: ignore[import-untyped]
from deep_translator.exceptions import TooManyRequests  # type: ignore[import-untyped]

from locale_sync.translators.base import RateLimitedError, TranslationError


class GoogleTranslator:
    """Google Translate backend.

    This backend uses Google Translate via deep-translator library.
    No API key is required (uses free web API).

    Attributes:
        name: Backend identifier ("google").
    """

    def __init__(self, max_concurrent: int = 5) -> None:
        """Initialize GoogleTranslator.

        Args:
            max_concurrent: Maximum concurrent translation requests.
        """
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def name(self) -> str:
        """Return backend name."""
        return "google"

    @property
    def max_text_length(self) -> int:
        """Maximum text length for Google Translate.

        Google Translate web API has a 5,000 character limit.
        """
        return 5000

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        """Translate a single text using Google Translate.

        Args:
            text: Text to translate.
            source_lang: Source language code ("en", "ja", "auto").
            target_lang: Target language code ("en", "ja").

        Returns:
            Translated text.

        Raises:
            RateLimitedError: When Google answers with "too many requests".
            TranslationError: On translation failure.
        """
        if len(text) > self.max_text_length:
            raise TranslationError(
                f"Text exceeds Google Translate limit of {self.max_text_length} characters"
            )

        async with self._semaphore:
            return await asyncio.to_thread(
                self._translate_sync, text, source_lang, target_lang
            )

    def _translate_sync(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        """Synchronous translation implementation."""
        try:
            translator = DeepGoogleTranslator(source=source_lang, target=target_lang)
            result = translator.translate(text)
            return result if result is not None else ""
        except TooManyRequests as e:
            raise RateLimitedError(f"Google Translate rate limit: {e}") from e
        except Exception as e:
            raise TranslationError(f"Google Translate failed: {e}") from e

    async def close(self) -> None:
        """Nothing to release; deep-translator opens a request per call."""
        return None
