"""
Anthropic Claude provider implementation.
"""

import logging

import anthropic

from ..exceptions import SummarizationError
from .base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider using the Messages API."""

    DEFAULT_MODEL = "claude-haiku-4-5-20251001"

    # Model aliases for convenience
    MODEL_ALIASES = {
        "haiku": "claude-haiku-4-5-20251001",
        "sonnet": "claude-sonnet-4-5-20250514",
        "opus": "claude-opus-4-5-20251218",
        "claude-haiku-4-5": "claude-haiku-4-5-20251001",
        "claude-sonnet-4-5": "claude-sonnet-4-5-20250514",
        "claude-opus-4-5": "claude-opus-4-5-20251218",
    }

    def __init__(
        self,
        api_key: str,
        default_model: str | None = None,
        timeout: float = 60.0,
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            default_model: Default model to use
            timeout: Request timeout in seconds
        """
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
        self._default_model = self._resolve_model(default_model or self.DEFAULT_MODEL)

    def _resolve_model(self, model: str) -> str:
        """Resolve model alias to full model ID."""
        return self.MODEL_ALIASES.get(model, model)

    @property
    def default_model(self) -> str:
        return self._default_model

    def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        resolved_model = self._resolve_model(model) if model else self._default_model

        kwargs = {
            "model": resolved_model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            raise SummarizationError(f"Claude API error ({e.status_code}): {e.message}") from e
        except anthropic.APIError as e:
            raise SummarizationError(f"Claude API request failed: {e}") from e

        # Concatenate every text block; tool or thinking blocks carry no summary text
        text = "\n".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text:
            raise SummarizationError("Claude API returned no text content")

        usage = response.usage
        return LLMResponse(
            text=text,
            model=resolved_model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )
