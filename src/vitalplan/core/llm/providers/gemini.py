"""Google Gemini providers over the REST API (httpx)."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from vitalplan.core.llm.provider import ImageResponse, ProviderResponse

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiAPIError(Exception):
    """Raised when the Gemini REST API returns an error or an unusable body."""


async def _post_generate(
    api_key: str, model: str, payload: dict[str, Any], timeout: float
) -> dict[str, Any]:
    url = GEMINI_API_URL.format(model=model)
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
        )

    if response.status_code == 503:
        logger.warning("Gemini API 503: model overloaded (%s)", model)
        raise GeminiAPIError("Gemini API 503: model overloaded")
    if response.status_code != 200:
        logger.error("Gemini API error %d for %s", response.status_code, model)
        raise GeminiAPIError(f"Gemini API error: {response.status_code} - {response.text[:500]}")

    data = response.json()
    if not data.get("candidates"):
        raise GeminiAPIError("Gemini API returned no candidates")
    return data


def _parts(data: dict[str, Any]) -> list[dict[str, Any]]:
    return data["candidates"][0].get("content", {}).get("parts", [])


class GeminiProvider:
    """Structured text generation with ``responseMimeType: application/json``."""

    def __init__(
        self, api_key: str, model: str = "gemini-1.5-flash-latest", timeout: float = 120.0
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    async def generate(
        self,
        system_message: str,
        user_message: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
    ) -> ProviderResponse:
        payload = {
            "systemInstruction": {"parts": [{"text": system_message}]},
            "contents": [{"role": "user", "parts": [{"text": user_message}]}],
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": temperature,
                "responseMimeType": "application/json",
            },
        }
        start = time.monotonic()
        data = await _post_generate(self.api_key, self.model, payload, self.timeout)
        elapsed_ms = (time.monotonic() - start) * 1000

        content = "".join(part.get("text", "") for part in _parts(data))
        usage = data.get("usageMetadata", {})
        return ProviderResponse(
            content=content,
            input_tokens=usage.get("promptTokenCount", 0),
            output_tokens=usage.get("candidatesTokenCount", 0),
            model=self.model,
            latency_ms=elapsed_ms,
        )


class GeminiImageProvider:
    """Single-image generation; returns the first inline image as a data URI."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash-preview-image-generation",
        timeout: float = 120.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    async def generate_image(self, prompt: str) -> ImageResponse:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        start = time.monotonic()
        data = await _post_generate(self.api_key, self.model, payload, self.timeout)
        elapsed_ms = (time.monotonic() - start) * 1000

        for part in _parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return ImageResponse(
                    url=f"data:{mime_type};base64,{inline['data']}",
                    model=self.model,
                    latency_ms=elapsed_ms,
                )
        raise GeminiAPIError("Image generation failed to return media")
