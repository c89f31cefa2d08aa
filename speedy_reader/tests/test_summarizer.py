"""
Tests for the Summarizer and the Anthropic provider.

Uses a mock LLM provider so no API key is required.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import pytest

from speedy_reader.config import Config
from speedy_reader.exceptions import SummarizationError
from speedy_reader.providers import AnthropicProvider
from speedy_reader.summarizer import Summarizer

from .conftest import MockProvider


class TestSummarizer:
    @pytest.mark.asyncio
    async def test_builds_prompt_and_returns_text(self):
        provider = MockProvider(text="  Two paragraphs of summary.  ")
        summarizer = Summarizer(provider)

        result = await summarizer.summarize("Big news", "Something happened.")

        assert result.text == "Two paragraphs of summary."
        assert result.model == "mock-model"
        call = provider.calls[0]
        assert call["user_prompt"] == (
            "Please summarize the following article:\n\n"
            "Title: Big news\n\nContent:\nSomething happened."
        )
        assert call["system_prompt"].startswith("You are a helpful assistant that summarizes news articles.")
        assert call["max_tokens"] == 1024

    @pytest.mark.asyncio
    async def test_truncates_long_content(self):
        provider = MockProvider()
        summarizer = Summarizer(provider)

        await summarizer.summarize("Long", "a" * 10_000 + "b" * 500)

        prompt = provider.calls[0]["user_prompt"]
        assert prompt.endswith("a" * 10_000)
        assert "b" not in prompt.split("Content:\n", 1)[1]

    @pytest.mark.asyncio
    async def test_model_override_is_passed(self):
        provider = MockProvider()
        result = await Summarizer(provider, model="custom-model").summarize("T", "C")

        assert provider.calls[0]["model"] == "custom-model"
        assert result.model == "custom-model"

    @pytest.mark.asyncio
    async def test_falls_back_to_provider_default_model(self):
        provider = MockProvider()
        await Summarizer(provider).summarize("T", "C")

        assert provider.calls[0]["model"] == "mock-model"

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        summarizer = Summarizer(MockProvider(error=SummarizationError("HTTP 529: overloaded")))

        with pytest.raises(SummarizationError, match="overloaded"):
            await summarizer.summarize("T", "C")

    def test_from_config_without_key(self):
        assert Summarizer.from_config(Config(claude_api_key=None)) is None

    def test_from_config_with_key(self):
        summarizer = Summarizer.from_config(Config(claude_api_key="sk-test", summary_model="sonnet"))
        assert isinstance(summarizer.provider, AnthropicProvider)
        assert summarizer.provider.default_model == "claude-sonnet-4-5-20250514"


class TestAnthropicProvider:
    def _provider(self, response=None, error=None) -> AnthropicProvider:
        provider = AnthropicProvider(api_key="sk-test")
        provider.client = MagicMock()
        if error is not None:
            provider.client.messages.create.side_effect = error
        else:
            provider.client.messages.create.return_value = response
        return provider

    def test_joins_text_blocks(self):
        response = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="First paragraph."),
                SimpleNamespace(type="text", text="Second paragraph."),
            ],
            usage=SimpleNamespace(input_tokens=10, output_tokens=5),
            stop_reason="end_turn",
        )
        provider = self._provider(response)

        result = provider.complete("prompt", system_prompt="system", max_tokens=1024)

        assert result.text == "First paragraph.\nSecond paragraph."
        assert result.model == AnthropicProvider.DEFAULT_MODEL
        kwargs = provider.client.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["max_tokens"] == 1024
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    def test_api_error_becomes_summarization_error(self):
        error = anthropic.APIConnectionError(request=MagicMock())
        provider = self._provider(error=error)

        with pytest.raises(SummarizationError):
            provider.complete("prompt")

    def test_empty_response_is_an_error(self):
        response = SimpleNamespace(
            content=[],
            usage=SimpleNamespace(input_tokens=1, output_tokens=0),
            stop_reason="end_turn",
        )
        with pytest.raises(SummarizationError):
            self._provider(response).complete("prompt")
