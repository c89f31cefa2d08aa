"""
Summarization backend contract.

`Summarizer` only needs a blocking completion call and the model it defaults
to; tests swap in a fake that subclasses `LLMProvider`.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """Generated text plus the model that produced it and token usage."""
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(ABC):
    """A model backend that turns a prompt into text."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        pass

    @abstractmethod
    def complete(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """
        Run one completion, blocking until the backend answers.

        Raises:
            SummarizationError: If the backend rejects the request or cannot be reached
        """

    async def complete_async(
        self,
        user_prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 1024,
    ) -> LLMResponse:
        """Run `complete` in the default executor so the event loop keeps ticking."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: self.complete(user_prompt, system_prompt, model, max_tokens)
        )
