"""Provider protocols for text and image generation, plus name-based factories.

Concrete providers are imported lazily so an SDK is only needed when its
provider is actually selected.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass
class ProviderResponse:
    """One completed text generation call."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


@dataclass
class ImageResponse:
    """One generated image. ``url`` is a data URI or remote URL."""

    url: str
    model: str
    latency_ms: float


@runtime_checkable
class LLMProvider(Protocol):
    """Produces a (JSON) text reply for a system + user message pair."""

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> ProviderResponse: ...


@runtime_checkable
class ImageProvider(Protocol):
    """Produces a single image for a prompt."""

    async def generate_image(self, prompt: str) -> ImageResponse: ...


_PROVIDER_PACKAGE = "vitalplan.core.llm.providers"

# name -> (module, class, default model). A None model means the class takes no credentials.
_TEXT_PROVIDERS: dict[str, tuple[str, str, str | None]] = {
    "anthropic": ("anthropic", "AnthropicProvider", "claude-sonnet-4-20250514"),
    "openai": ("openai", "OpenAIProvider", "gpt-4o"),
    "gemini": ("gemini", "GeminiProvider", "gemini-1.5-flash-latest"),
    "mock": ("mock", "MockProvider", None),
}

_IMAGE_PROVIDERS: dict[str, tuple[str, str, str | None]] = {
    "gemini": ("gemini", "GeminiImageProvider", "gemini-2.0-flash-preview-image-generation"),
    "openai": ("openai", "OpenAIImageProvider", "gpt-image-1"),
    "mock": ("mock", "MockImageProvider", None),
}


def _build(table: dict[str, tuple[str, str, str | None]], kind: str, name: str,
           api_key: str, model: str) -> Any:
    try:
        module_name, class_name, default_model = table[name]
    except KeyError:
        raise ValueError(f"Unknown {kind} provider: {name}") from None
    cls = getattr(importlib.import_module(f"{_PROVIDER_PACKAGE}.{module_name}"), class_name)
    if default_model is None:
        return cls()
    return cls(api_key=api_key, model=model or default_model)


def create_provider(provider_name: str, api_key: str = "", model: str = "") -> LLMProvider:
    """Create a text provider by name ("anthropic", "openai", "gemini", "mock").

    ``model`` overrides the provider's default model when non-empty.
    """
    return _build(_TEXT_PROVIDERS, "LLM", provider_name, api_key, model)


def create_image_provider(provider_name: str, api_key: str = "", model: str = "") -> ImageProvider:
    """Create an image provider by name ("gemini", "openai", "mock")."""
    return _build(_IMAGE_PROVIDERS, "image", provider_name, api_key, model)
