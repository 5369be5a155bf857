"""Mock providers for testing."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from vitalplan.core.llm.provider import ImageResponse, ProviderResponse


class MockProvider:
    """Mock text provider — returns a canned response."""

    def __init__(self, response_content: str = "{}") -> None:
        self.response_content = response_content
        self.last_system_message: str = ""
        self.last_user_message: str = ""
        self.call_count: int = 0
        self._raise_on_call: Exception | None = None

    def raise_on_call(self, exc: Exception) -> None:
        self._raise_on_call = exc

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        self.last_system_message = system_message
        self.last_user_message = user_message
        self.call_count += 1
        if self._raise_on_call is not None:
            raise self._raise_on_call
        return ProviderResponse(
            content=self.response_content,
            input_tokens=len(system_message.split()) + len(user_message.split()),
            output_tokens=len(self.response_content.split()),
            model="mock",
            latency_ms=0.0,
        )


class MockImageProvider:
    """Mock image provider.

    Returns ``mock://image/<n>`` URLs. ``fail_when`` decides per prompt whether
    the call raises, and ``delay`` simulates latency so concurrency can be
    observed via ``max_in_flight``.
    """

    def __init__(
        self,
        *,
        fail_when: Callable[[str], bool] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.fail_when = fail_when
        self.delay = delay
        self.prompts: list[str] = []
        self.call_count = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate_image(self, prompt: str) -> ImageResponse:
        self.call_count += 1
        n = self.call_count
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_when is not None and self.fail_when(prompt):
                raise RuntimeError(f"mock image generation failed for {prompt!r}")
            return ImageResponse(
                url=f"mock://image/{n}", model="mock", latency_ms=0.0
            )
        finally:
            self.in_flight -= 1
