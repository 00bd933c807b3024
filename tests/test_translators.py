# SPDX-License-Identifier: Apache-2.0
"""Tests for translation backends."""

from __future__ import annotations

import asyncio
import json
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from locale_sync.translators import (
    ConfigurationError,
    EmptyTranslationError,
    GoogleTranslator,
    ProviderKind,
    RateLimitedError,
    TranslationError,
    TranslatorBackend,
    TranslatorError,
    create_translator,
    get_claude_translator,
    get_deepl_translator,
    get_openai_translator,
    resolve_api_key,
)
from locale_sync.translators.base import parse_retry_after


def _mock_deepl_session(status: int, json_body: dict | None = None, headers: dict | None = None) -> MagicMock:
    """Build an aiohttp-like session whose post() yields one response."""
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.headers = headers or {}
    mock_response.json = AsyncMock(return_value=json_body or {})
    mock_response.text = AsyncMock(return_value="error body")

    mock_session = MagicMock()
    mock_session.post = MagicMock(return_value=AsyncMock())
    mock_session.post.return_value.__aenter__ = AsyncMock(return_value=mock_response)
    mock_session.post.return_value.__aexit__ = AsyncMock(return_value=None)
    return mock_session


class TestTranslatorBackendProtocol:
    """Test TranslatorBackend protocol."""

    def test_google_translator_implements_protocol(self) -> None:
        """GoogleTranslator should implement TranslatorBackend protocol."""
        translator = GoogleTranslator()
        assert isinstance(translator, TranslatorBackend)

    def test_deepl_translator_implements_protocol(self) -> None:
        """DeepLTranslator should implement TranslatorBackend protocol."""
        DeepLTranslator = get_deepl_translator()
        assert isinstance(DeepLTranslator(api_key="test-key"), TranslatorBackend)


class TestExceptions:
    """Test exception hierarchy."""

    def test_translation_error_inherits_from_translator_error(self) -> None:
        assert issubclass(TranslationError, TranslatorError)

    def test_configuration_error_inherits_from_translator_error(self) -> None:
        assert issubclass(ConfigurationError, TranslatorError)

    def test_rate_limited_is_translation_error(self) -> None:
        """Rate limits are a kind of translation failure carrying a hint."""
        error = RateLimitedError("slow down", retry_after=2.5)
        assert isinstance(error, TranslationError)
        assert error.retry_after == 2.5

    def test_empty_translation_error_message(self) -> None:
        error = EmptyTranslationError("Hello")
        assert isinstance(error, TranslationError)
        assert "'Hello'" in str(error)


class TestParseRetryAfter:
    """Tests for Retry-After parsing."""

    def test_seconds(self) -> None:
        assert parse_retry_after("30") == 30.0

    def test_milliseconds(self) -> None:
        assert parse_retry_after("500ms") == 0.5

    def test_missing_or_invalid(self) -> None:
        assert parse_retry_after(None) is None
        assert parse_retry_after("") is None
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") is None


class TestProviderKind:
    """Tests for provider selection."""

    def test_parse_known_provider(self) -> None:
        assert ProviderKind.parse("DeepL") is ProviderKind.DEEPL

    def test_parse_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            ProviderKind.parse("babelfish")
        assert "Unknown provider" in str(exc_info.value)
        assert "claude" in str(exc_info.value)

    def test_api_key_env_var_derived_from_name(self) -> None:
        assert ProviderKind.CLAUDE.api_key_env_var == "CLAUDE_API_KEY"
        assert ProviderKind.OPENAI.api_key_env_var == "OPENAI_API_KEY"

    def test_google_needs_no_key(self) -> None:
        assert resolve_api_key(ProviderKind.GOOGLE, environ={}) is None

    def test_resolve_from_environment(self) -> None:
        key = resolve_api_key(ProviderKind.DEEPL, environ={"DEEPL_API_KEY": "abc"})
        assert key == "abc"

    def test_explicit_key_wins(self) -> None:
        key = resolve_api_key(
            ProviderKind.DEEPL, explicit="cli", environ={"DEEPL_API_KEY": "env"}
        )
        assert key == "cli"

    def test_missing_key_raises(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_api_key(ProviderKind.OPENAI, environ={})
        assert "OPENAI_API_KEY" in str(exc_info.value)

    def test_create_google_translator(self) -> None:
        translator = create_translator(ProviderKind.GOOGLE)
        assert translator.name == "google"

    def test_create_deepl_translator(self) -> None:
        translator = create_translator(ProviderKind.DEEPL, api_key="test-key")
        assert translator.name == "deepl"

    def test_create_without_key_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            create_translator(ProviderKind.CLAUDE, api_key=None)


class TestGoogleTranslator:
    """Test GoogleTranslator."""

    def test_name(self) -> None:
        translator = GoogleTranslator()
        assert translator.name == "google"

    @pytest.mark.asyncio
    async def test_translate_mocked(self) -> None:
        """Test translate with mocked sync function."""
        translator = GoogleTranslator()

        with patch.object(translator, "_translate_sync", return_value="Bonjour"):
            result = await translator.translate("Hello", "en", "fr")
            assert result == "Bonjour"

    @pytest.mark.asyncio
    async def test_text_over_limit_raises(self) -> None:
        translator = GoogleTranslator()
        with pytest.raises(TranslationError):
            await translator.translate("x" * 5001, "en", "fr")

    def test_translate_sync_error_handling(self) -> None:
        """_translate_sync should wrap exceptions in TranslationError."""
        translator = GoogleTranslator()

        with patch("locale_sync.translators.google.DeepGoogleTranslator") as mock_class:
            mock_class.return_value.translate.side_effect = Exception("API error")
            with pytest.raises(TranslationError) as exc_info:
                translator._translate_sync("Hello", "en", "fr")
            assert "Google Translate failed" in str(exc_info.value)

    def test_translate_sync_rate_limit(self) -> None:
        """TooManyRequests should map to RateLimitedError."""
        from deep_translator.exceptions import TooManyRequests

        translator = GoogleTranslator()

        with patch("locale_sync.translators.google.DeepGoogleTranslator") as mock_class:
            mock_class.return_value.translate.side_effect = TooManyRequests()
            with pytest.raises(RateLimitedError):
                translator._translate_sync("Hello", "en", "fr")

    def test_translate_sync_none_result(self) -> None:
        """A None result becomes an empty string (rejected by the scheduler)."""
        translator = GoogleTranslator()

        with patch("locale_sync.translators.google.DeepGoogleTranslator") as mock_class:
            mock_class.return_value.translate.return_value = None
            assert translator._translate_sync("Hello", "en", "fr") == ""

    def test_language_codes_passed_unchanged(self) -> None:
        """Region codes such as zh-CN are case-sensitive in deep-translator."""
        translator = GoogleTranslator()

        with patch("locale_sync.translators.google.DeepGoogleTranslator") as mock_class:
            mock_class.return_value.translate.return_value = "\u4f60\u597d"
            translator._translate_sync("Hello", "en", "zh-CN")

        mock_class.assert_called_once_with(source="en", target="zh-CN")


@pytest.mark.skipif(
    os.environ.get("RUN_INTEGRATION") != "1",
    reason="Integration tests disabled (set RUN_INTEGRATION=1 to run)",
)
class TestGoogleTranslatorIntegration:
    """Integration tests for GoogleTranslator (real API).

    Run with: RUN_INTEGRATION=1 pytest tests/test_translators.py
    """

    @pytest.mark.asyncio
    async def test_real_translation_en_to_fr(self) -> None:
        translator = GoogleTranslator()
        result = await translator.translate("Good morning", "en", "fr")
        assert result
        assert result != "Good morning"


class TestDeepLTranslatorUnit:
    """Unit tests for DeepLTranslator (mocked)."""

    def test_requires_api_key(self) -> None:
        DeepLTranslator = get_deepl_translator()
        with pytest.raises(ConfigurationError) as exc_info:
            DeepLTranslator(api_key="")
        assert "API key is required" in str(exc_info.value)

    def test_custom_api_url(self) -> None:
        DeepLTranslator = get_deepl_translator()
        translator = DeepLTranslator(
            api_key="test-key",
            api_url="https://api.deepl.com/v2/translate",
        )
        assert translator._api_url == "https://api.deepl.com/v2/translate"

    @pytest.mark.asyncio
    async def test_translate_mocked(self) -> None:
        DeepLTranslator = get_deepl_translator()
        translator = DeepLTranslator(api_key="test-key")
        translator._session = _mock_deepl_session(200, {"translations": [{"text": "Bonjour"}]})

        result = await translator.translate("Hello", "en", "fr")
        assert result == "Bonjour"

        params = translator._session.post.call_args.kwargs["data"]
        assert ("target_lang", "FR") in params
        assert ("source_lang", "EN") in params

    @pytest.mark.asyncio
    async def test_rate_limit_carries_retry_after(self) -> None:
        DeepLTranslator = get_deepl_translator()
        translator = DeepLTranslator(api_key="test-key")
        translator._session = _mock_deepl_session(429, headers={"Retry-After": "3"})

        with pytest.raises(RateLimitedError) as exc_info:
            await translator.translate("Hello", "en", "fr")
        assert exc_info.value.retry_after == 3.0

    @pytest.mark.asyncio
    async def test_forbidden_is_configuration_error(self) -> None:
        DeepLTranslator = get_deepl_translator()
        translator = DeepLTranslator(api_key="test-key")
        translator._session = _mock_deepl_session(403)

        with pytest.raises(ConfigurationError):
            await translator.translate("Hello", "en", "fr")

    @pytest.mark.asyncio
    async def test_server_error_is_translation_error(self) -> None:
        DeepLTranslator = get_deepl_translator()
        translator = DeepLTranslator(api_key="test-key")
        translator._session = _mock_deepl_session(503)

        with pytest.raises(TranslationError) as exc_info:
            await translator.translate("Hello", "en", "fr")
        assert not isinstance(exc_info.value, RateLimitedError)

    @pytest.mark.asyncio
    async def test_timeout_is_translation_error(self) -> None:
        DeepLTranslator = get_deepl_translator()
        translator = DeepLTranslator(api_key="test-key")
        translator._session = MagicMock()
        translator._session.post = MagicMock(side_effect=asyncio.TimeoutError())

        with pytest.raises(TranslationError, match="timed out"):
            await translator.translate("Hello", "en", "fr")

    @pytest.mark.asyncio
    async def test_invalid_json_is_translation_error(self) -> None:
        DeepLTranslator = get_deepl_translator()
        translator = DeepLTranslator(api_key="test-key")
        translator._session = _mock_deepl_session(200)
        response = translator._session.post.return_value.__aenter__.return_value
        response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "<html>", 0))

        with pytest.raises(TranslationError, match="invalid response"):
            await translator.translate("Hello", "en", "fr")


class TestOpenAITranslatorUnit:
    """Unit tests for OpenAITranslator (mocked)."""

    @pytest.fixture
    def translator(self):
        """Create a translator with mocked OpenAI client."""
        OpenAITranslator = get_openai_translator()
        translator = OpenAITranslator(api_key="test-key", model="gpt-4o-mini")
        translator._client = AsyncMock()
        return translator

    def test_requires_api_key(self) -> None:
        OpenAITranslator = get_openai_translator()
        with pytest.raises(ConfigurationError) as exc_info:
            OpenAITranslator(api_key="")
        assert "API key is required" in str(exc_info.value)

    def test_name(self, translator) -> None:
        assert translator.name == "openai"

    @patch.dict(os.environ, {"OPENAI_MODEL": "gpt-4o"}, clear=False)
    def test_model_from_env_variable(self) -> None:
        OpenAITranslator = get_openai_translator()
        translator = OpenAITranslator(api_key="test-key")
        assert translator._model == "gpt-4o"

    @pytest.mark.asyncio
    async def test_translate_returns_parsed_translation(self, translator) -> None:
        parsed = translator._TranslationResult(translation="  Bonjour \n")
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.parsed = parsed
        translator._client.chat.completions.parse = AsyncMock(return_value=response)

        result = await translator.translate("Hello", "en", "fr")

        assert result == "Bonjour"
        kwargs = translator._client.chat.completions.parse.call_args.kwargs
        assert "from English to French" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_empty_parsed_response_raises(self, translator) -> None:
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.parsed = None
        translator._client.chat.completions.parse = AsyncMock(return_value=response)

        with pytest.raises(TranslationError):
            await translator.translate("Hello", "en", "fr")

    @pytest.mark.asyncio
    async def test_rate_limit_error_mapped(self, translator) -> None:
        import httpx
        from openai import RateLimitError

        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(429, headers={"retry-after": "7"}, request=request)
        error = RateLimitError("rate limited", response=response, body=None)
        translator._client.chat.completions.parse = AsyncMock(side_effect=error)

        with pytest.raises(RateLimitedError) as exc_info:
            await translator.translate("Hello", "en", "fr")
        assert exc_info.value.retry_after == 7.0

    @pytest.mark.asyncio
    async def test_authentication_error_mapped(self, translator) -> None:
        import httpx
        from openai import AuthenticationError

        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(401, request=request)
        error = AuthenticationError("bad key", response=response, body=None)
        translator._client.chat.completions.parse = AsyncMock(side_effect=error)

        with pytest.raises(ConfigurationError):
            await translator.translate("Hello", "en", "fr")


class TestClaudeTranslatorUnit:
    """Unit tests for ClaudeTranslator (mocked LiteLLM)."""

    def test_requires_api_key(self) -> None:
        ClaudeTranslator = get_claude_translator()
        with pytest.raises(ConfigurationError):
            ClaudeTranslator(api_key="")

    def test_litellm_model(self) -> None:
        ClaudeTranslator = get_claude_translator()
        translator = ClaudeTranslator(api_key="test-key", model="claude-haiku-4-5")
        assert translator.litellm_model == "anthropic/claude-haiku-4-5"

    @pytest.mark.asyncio
    async def test_translate_passes_key_per_call(self) -> None:
        ClaudeTranslator = get_claude_translator()
        translator = ClaudeTranslator(api_key="test-key")

        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = " Hallo "
        with patch("litellm.acompletion", new=AsyncMock(return_value=response)) as mock_call:
            result = await translator.translate("Hello", "en", "de")

        assert result == "Hallo"
        kwargs = mock_call.call_args.kwargs
        assert kwargs["api_key"] == "test-key"
        assert "from English to German" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_generic_failure_is_translation_error(self) -> None:
        ClaudeTranslator = get_claude_translator()
        translator = ClaudeTranslator(api_key="test-key")

        with patch("litellm.acompletion", new=AsyncMock(side_effect=RuntimeError("boom"))):
            with pytest.raises(TranslationError) as exc_info:
                await translator.translate("Hello", "en", "de")
        assert "Claude translation failed" in str(exc_info.value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error_name", ["InternalServerError", "ServiceUnavailableError"])
    async def test_overloaded_is_rate_limited(self, error_name: str) -> None:
        """Anthropic 529 overload responses back off instead of using up retries."""
        import litellm

        ClaudeTranslator = get_claude_translator()
        translator = ClaudeTranslator(api_key="test-key")
        error = getattr(litellm, error_name)(
            message="Overloaded", llm_provider="anthropic", model="claude-sonnet-4-5"
        )

        with patch("litellm.acompletion", new=AsyncMock(side_effect=error)):
            with pytest.raises(RateLimitedError):
                await translator.translate("Hello", "en", "de")


class TestLazyImports:
    """Test lazy import functions."""

    def test_get_deepl_translator_returns_class(self) -> None:
        assert get_deepl_translator().__name__ == "DeepLTranslator"

    def test_get_openai_translator_returns_class(self) -> None:
        assert get_openai_translator().__name__ == "OpenAITranslator"

    def test_get_claude_translator_returns_class(self) -> None:
        assert get_claude_translator().__name__ == "ClaudeTranslator"
