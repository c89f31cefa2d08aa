"""
Summarizer - LLM-powered article summarization.

Builds the prompt for an article, truncates oversized bodies and hands the
request to the configured provider.
"""

import logging
from dataclasses import dataclass

from .config import Config
from .providers import AnthropicProvider, LLMProvider

logger = logging.getLogger(__name__)


@dataclass
class SummaryText:
    """Generated summary plus the model that wrote it."""
    text: str
    model: str


class Summarizer:
    """Article summarizer backed by an LLM provider."""

    # Maximum content length (characters) to send to the API
    MAX_CONTENT_LENGTH = 10_000

    MAX_OUTPUT_TOKENS = 1024

    SYSTEM_PROMPT = (
        "You are a helpful assistant that summarizes news articles. "
        "Provide a concise, informative summary in 2-3 paragraphs. "
        "Focus on the key facts, main arguments, and important conclusions. "
        "Use clear, accessible language."
    )

    USER_PROMPT = "Please summarize the following article:\n\nTitle: {title}\n\nContent:\n{content}"

    def __init__(self, provider: LLMProvider, model: str | None = None):
        """
        Initialize summarizer with an LLM provider.

        Args:
            provider: LLM provider instance
            model: Model override; the provider default is used when None
        """
        self.provider = provider
        self.model = model

    @classmethod
    def from_config(cls, config: Config) -> "Summarizer | None":
        """Build a summarizer from config, or None when no API key is set."""
        if not config.has_summarizer:
            return None
        provider = AnthropicProvider(api_key=config.claude_api_key, default_model=config.summary_model)
        return cls(provider)

    @classmethod
    def truncate(cls, content: str) -> str:
        """Cut content to MAX_CONTENT_LENGTH characters."""
        if len(content) > cls.MAX_CONTENT_LENGTH:
            return content[:cls.MAX_CONTENT_LENGTH]
        return content

    def build_prompt(self, title: str, content: str) -> str:
        return self.USER_PROMPT.format(title=title, content=self.truncate(content))

    async def summarize(self, title: str, content: str) -> SummaryText:
        """
        Generate a summary for an article.

        Raises:
            SummarizationError: If the backend call fails
        """
        response = await self.provider.complete_async(
            user_prompt=self.build_prompt(title, content),
            system_prompt=self.SYSTEM_PROMPT,
            model=self.model or self.provider.default_model,
            max_tokens=self.MAX_OUTPUT_TOKENS,
        )
        logger.debug(
            f"Summarized '{title}' with {response.model} "
            f"({response.input_tokens} in / {response.output_tokens} out)"
        )
        return SummaryText(text=response.text.strip(), model=response.model)
