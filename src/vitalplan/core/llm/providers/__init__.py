"""LLM provider implementations."""

from vitalplan.core.llm.providers.anthropic import AnthropicProvider
from vitalplan.core.llm.providers.gemini import GeminiImageProvider, GeminiProvider
from vitalplan.core.llm.providers.mock import MockImageProvider, MockProvider
from vitalplan.core.llm.providers.openai import OpenAIImageProvider, OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "GeminiImageProvider",
    "GeminiProvider",
    "MockImageProvider",
    "MockProvider",
    "OpenAIImageProvider",
    "OpenAIProvider",
]
