"""Anthropic Claude provider for JSON suggestion replies."""

from __future__ import annotations

import logging
import time

from vitalplan.core.llm.provider import ProviderResponse

logger = logging.getLogger(__name__)

# The assistant turn is prefilled with this so the reply starts inside the object.
_JSON_PREFILL = "{"


class AnthropicProvider:
    """Claude provider using the Anthropic SDK."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514") -> None:
        import anthropic

        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        start = time.monotonic()
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_message,
            messages=[
                {"role": "user", "content": user_message},
                {"role": "assistant", "content": _JSON_PREFILL},
            ],
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        if getattr(response, "stop_reason", None) == "max_tokens":
            logger.warning("Claude reply truncated at %d tokens; JSON is likely incomplete", max_tokens)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
        return ProviderResponse(
            content=_JSON_PREFILL + text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
            latency_ms=elapsed_ms,
        )
