"""
LLM Provider abstraction layer.
"""

from .base import LLMProvider, LLMResponse
from .anthropic import AnthropicProvider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "AnthropicProvider",
]
