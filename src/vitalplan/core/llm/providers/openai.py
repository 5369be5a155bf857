"""OpenAI GPT and image providers."""

from __future__ import annotations

import time

from vitalplan.core.llm.provider import ImageResponse, ProviderResponse


class OpenAIProvider:
    """OpenAI provider using the OpenAI SDK in JSON mode."""

    def __init__(self, api_key: str, model: str = "gpt-4o") -> None:
        import openai

        self.client = openai.AsyncOpenAI(api_key=api_key)
        self.model = model

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        start = time.monotonic()
        response = await self.client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": system_message},
                {"role": "user", "content": user_message},
            ],
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content or "") if choice else ""
        usage = response.usage
        return ProviderResponse(
            content=content,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self.model,
            latency_ms=elapsed_ms,
        )


class OpenAIImageProvider:
    """Image provider using the OpenAI Images API; returns a PNG data URI."""

    def __init__(self, api_key: str, model: str = "gpt-image-1", size: str = "1024x1024") -> None:
        import openai

        self.client = openai.AsyncOpenAI(api_key=api_key)
        self.model = model
        self.size = size

    async def generate_image(self, prompt: str) -> ImageResponse:
        start = time.monotonic()
        response = await self.client.images.generate(
            model=self.model,
            prompt=prompt,
            size=self.size,
            n=1,
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        image = response.data[0] if response.data else None
        if image is None:
            raise ValueError("OpenAI image response contained no data")
        if image.b64_json:
            url = f"data:image/png;base64,{image.b64_json}"
        elif image.url:
            url = image.url
        else:
            raise ValueError("OpenAI image response contained neither b64_json nor url")
        return ImageResponse(url=url, model=self.model, latency_ms=elapsed_ms)
