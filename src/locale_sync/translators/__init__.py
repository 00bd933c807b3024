# SPDX-License-Identifier: Apache-2.0
"""Translation backend modules.

This module provides translation backends for Google Translate, DeepL,
OpenAI and Claude. The set of backends is closed: pick one with
:class:`ProviderKind` and build it with :func:`create_translator`.

Google Translate is always available (no API key required).
DeepL, OpenAI and Claude require optional dependencies and API keys.

Usage:
    from locale_sync.translators import ProviderKind, create_translator
    translator = create_translator(ProviderKind.DEEPL, api_key="your-api-key")
    result = await translator.translate("Hello", "en", "fr")
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum

from locale_sync.translators.base import (
    ConfigurationError,
    EmptyTranslationError,
    RateLimitedError,
    TranslationError,
    TranslatorBackend,
    TranslatorError,
)
from locale_sync.translators.google import GoogleTranslator

__all__ = [
    # Protocol and exceptions
    "TranslatorBackend",
    "TranslatorError",
    "TranslationError",
    "EmptyTranslationError",
    "RateLimitedError",
    "ConfigurationError",
    # Selection
    "ProviderKind",
    "create_translator",
    "resolve_api_key",
    # Always available
    "GoogleTranslator",
    # Lazy import functions
    "get_deepl_translator",
    "get_openai_translator",
    "get_claude_translator",
]


class ProviderKind(str, Enum):
    """Supported translation providers."""

    GOOGLE = "google"
    DEEPL = "deepl"
    OPENAI = "openai"
    CLAUDE = "claude"

    @classmethod
    def parse(cls, value: str) -> ProviderKind:
        """Look up a provider by name.

        Raises:
            ConfigurationError: If the name is not a known provider.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            supported = ", ".join(kind.value for kind in cls)
            raise ConfigurationError(
                f'Unknown provider "{value}". Supported providers: {supported}'
            ) from None

    @property
    def requires_api_key(self) -> bool:
        return self is not ProviderKind.GOOGLE

    @property
    def api_key_env_var(self) -> str:
        """Environment variable holding this provider's credential."""
        return f"{self.value.upper()}_API_KEY"


def resolve_api_key(
    kind: ProviderKind,
    explicit: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Resolve the credential for a provider.

    Args:
        kind: Selected provider.
        explicit: Key given on the command line (takes priority).
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        The API key, or None for providers that need none.

    Raises:
        ConfigurationError: If the provider needs a key and none is set.
    """
    if not kind.requires_api_key:
        return None
    env = os.environ if environ is None else environ
    api_key = explicit or env.get(kind.api_key_env_var, "")
    if not api_key:
        raise ConfigurationError(
            f"{kind.api_key_env_var} environment variable is not set "
            f"(required for provider '{kind.value}')"
        )
    return api_key


def create_translator(
    kind: ProviderKind,
    api_key: str | None = None,
    model: str | None = None,
) -> TranslatorBackend:
    """Build the translator for a provider.

    Args:
        kind: Selected provider.
        api_key: Provider credential (ignored by Google).
        model: Model override for LLM providers.

    Returns:
        Translator instance.

    Raises:
        ConfigurationError: If the credential is missing.
    """
    if kind is ProviderKind.DEEPL:
        DeepLTranslator = get_deepl_translator()
        api_url = os.environ.get("DEEPL_API_URL")
        return DeepLTranslator(api_key=api_key or "", api_url=api_url)
    if kind is ProviderKind.OPENAI:
        OpenAITranslator = get_openai_translator()
        return OpenAITranslator(api_key=api_key or "", model=model)
    if kind is ProviderKind.CLAUDE:
        ClaudeTranslator = get_claude_translator()
        return ClaudeTranslator(api_key=api_key or "", model=model)
    return GoogleTranslator()


def get_deepl_translator() -> type:
    """Get DeepLTranslator class with lazy import.

    Raises:
        ImportError: If aiohttp is not installed.
    """
    from locale_sync.translators.deepl import DeepLTranslator

    return DeepLTranslator


def get_openai_translator() -> type:
    """Get OpenAITranslator class with lazy import.

    Raises:
        ImportError: If openai package is not installed.
    """
    from locale_sync.translators.openai import OpenAITranslator

    return OpenAITranslator


def get_claude_translator() -> type:
    """Get ClaudeTranslator class with lazy import.

    Raises:
        ImportError: If litellm is not installed.
    """
    from locale_sync.translators.claude import ClaudeTranslator

    return ClaudeTranslator
