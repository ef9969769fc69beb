"""
Tests for provider implementations.

Tests cover:
- PlainTextExtractor decoding and page counting
- OpenAILLMProvider message building and error mapping (ChatOpenAI mocked)
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from systems_kg.errors import TransientServiceError
from systems_kg.providers import PlainTextExtractor
from systems_kg.providers.llm.openai import OpenAILLMProvider


class TestPlainTextExtractor:
    """Tests for PlainTextExtractor."""

    @pytest.mark.asyncio
    async def test_utf8(self):
        result = await PlainTextExtractor().extract("Māori youth services".encode("utf-8"), "a.txt")
        assert result.text == "Māori youth services"
        assert result.page_count == 1

    @pytest.mark.asyncio
    async def test_latin1_fallback(self):
        result = await PlainTextExtractor().extract("Café".encode("latin-1"), "a.txt")
        assert result.text == "Café"

    @pytest.mark.asyncio
    async def test_form_feeds_are_pages(self):
        result = await PlainTextExtractor().extract(b"page one\fpage two\fpage three", "a.txt")
        assert result.page_count == 3
        assert "\f" not in result.text

    @pytest.mark.asyncio
    async def test_empty_payload(self):
        result = await PlainTextExtractor().extract(b"", "a.txt")
        assert result.text == ""
        assert result.page_count == 0


def _mock_chat(ainvoke: AsyncMock) -> MagicMock:
    chat = MagicMock()
    chat.bind.return_value.ainvoke = ainvoke
    return chat


class TestOpenAILLMProvider:
    """Tests for OpenAILLMProvider with ChatOpenAI mocked out."""

    @pytest.mark.asyncio
    async def test_generate(self):
        ainvoke = AsyncMock(return_value=MagicMock(content='{"entities": []}'))
        chat = _mock_chat(ainvoke)
        with patch("systems_kg.providers.llm.openai._get_chat_openai", return_value=chat) as factory:
            provider = OpenAILLMProvider(api_key="sk-test", model="gpt-4o-mini", timeout=5)
            text = await provider.generate("prompt", system="system", temperature=0.3, max_tokens=100)

        assert text == '{"entities": []}'
        assert provider.model_name == "gpt-4o-mini"
        factory.assert_called_once_with(
            api_key="sk-test", model="gpt-4o-mini", temperature=0.3, timeout=5
        )
        chat.bind.assert_called_once_with(max_tokens=100)
        messages = ainvoke.call_args.args[0]
        assert [m.content for m in messages] == ["system", "prompt"]

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(429, request=request)
        error = openai.RateLimitError("slow down", response=response, body=None)
        chat = _mock_chat(AsyncMock(side_effect=error))

        with patch("systems_kg.providers.llm.openai._get_chat_openai", return_value=chat):
            with pytest.raises(TransientServiceError) as exc_info:
                await OpenAILLMProvider().generate("prompt")

        assert exc_info.value.kind == "rate_limited"
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        chat = _mock_chat(AsyncMock(side_effect=openai.APITimeoutError(request=request)))

        with patch("systems_kg.providers.llm.openai._get_chat_openai", return_value=chat):
            with pytest.raises(TransientServiceError) as exc_info:
                await OpenAILLMProvider().generate("prompt")

        assert exc_info.value.kind == "timeout"

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        chat = _mock_chat(AsyncMock(side_effect=RuntimeError("bad request")))
        with patch("systems_kg.providers.llm.openai._get_chat_openai", return_value=chat):
            with pytest.raises(RuntimeError):
                await OpenAILLMProvider().generate("prompt")
