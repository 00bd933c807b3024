# SPDX-License-Identifier: Apache-2.0
"""DeepL translation backend."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from locale_sync.translators.base import (
    ConfigurationError,
    RateLimitedError,
    TranslationError,
    parse_retry_after,
)

if TYPE_CHECKING:
    import aiohttp


class DeepLTranslator:
    """DeepL translation backend.

    This backend uses DeepL API for high-quality translation.
    Requires an API key (free or pro).

    Attributes:
        name: Backend identifier ("deepl").
    """

    DEFAULT_API_URL = "https://api-free.deepl.com/v2/translate"

    def __init__(
        self,
        api_key: str,
        api_url: str | None = None,
    ) -> None:
        """Initialize DeepLTranslator.

        Args:
            api_key: DeepL API key.
            api_url: API URL (default: free API endpoint).

        Raises:
            ConfigurationError: If API key is not provided.
            ImportError: If aiohttp is not installed.
        """
        if not api_key:
            raise ConfigurationError("DeepL API key is required")

        # Lazy import aiohttp
        try:
            import aiohttp as _aiohttp

            self._aiohttp = _aiohttp
        except ImportError:
            raise ImportError(
                "aiohttp is required for DeepL backend. "
                "Install with: pip install locale-sync[deepl]"
            ) from None

        self._api_key = api_key
        self._api_url = api_url or self.DEFAULT_API_URL
        self._session: aiohttp.ClientSession | None = None

    @property
    def name(self) -> str:
        """Return backend name."""
        return "deepl"

    async def __aenter__(self) -> DeepLTranslator:
        """Enter async context manager."""
        self._session = self._aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = self._aiohttp.ClientSession()
        return self._session

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
    ) -> str:
        """Translate a single text using DeepL.

        Args:
            text: Text to translate.
            source_lang: Source language code.
            target_lang: Target language code.

        Returns:
            Translated text.

        Raises:
            RateLimitedError: On HTTP 429 (carries the Retry-After hint).
            TranslationError: On translation failure.
            ConfigurationError: On authentication failure.
        """
        session = await self._ensure_session()

        params: list[tuple[str, str]] = [
            ("text", text),
            ("target_lang", target_lang.upper()),
        ]
        # DeepL doesn't support "auto" - omit source_lang for auto-detection
        if source_lang.lower() != "auto":
            params.append(("source_lang", source_lang.upper()))
        headers = {"Authorization": f"DeepL-Auth-Key {self._api_key}"}

        try:
            async with session.post(self._api_url, data=params, headers=headers) as response:
                if response.status == 200:
                    data = await response.json()
                    translations = data.get("translations") or []
                    if len(translations) != 1:
                        raise TranslationError(
                            f"DeepL returned {len(translations)} translations for 1 text"
                        )
                    return str(translations[0].get("text", ""))
                elif response.status == 403:
                    raise ConfigurationError("Invalid DeepL API key")
                elif response.status in (429, 529):
                    raise RateLimitedError(
                        "DeepL rate limit exceeded",
                        retry_after=parse_retry_after(response.headers.get("Retry-After")),
                    )
                elif response.status == 456:
                    raise ConfigurationError("DeepL character quota exceeded")
                elif response.status >= 500:
                    raise TranslationError(
                        f"DeepL server error (status {response.status})"
                    )
                else:
                    error_text = await response.text()
                    raise TranslationError(
                        f"DeepL API error (status {response.status}): {error_text}"
                    )
        except self._aiohttp.ClientError as e:
            raise TranslationError(f"DeepL request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TranslationError("DeepL request timed out") from e
        except ValueError as e:
            # Malformed JSON body
            raise TranslationError(f"DeepL returned an invalid response: {e}") from e

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
