"""Generation clients — the bridge between contracts, prompts and providers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from vitalplan.core.llm.prompts import (
    PromptLibrary,
    PromptNotFoundError,
    PromptTemplateError,
    render_prompt,
)
from vitalplan.core.llm.provider import ImageProvider, LLMProvider, ProviderResponse
from vitalplan.core.llm.response import (
    ContractViolation,
    check_contract,
    extract_json_object,
)
from vitalplan.core.llm.system_prompt import build_full_system_prompt

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when a structured generation call fails or returns a non-conforming object."""

    def __init__(self, message: str, *, kind: str = "", reasons: list[str] | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.reasons = reasons or []


class ImageGenerationError(Exception):
    """Raised when a single image cannot be generated."""


@dataclass(frozen=True)
class GenerationContract:
    """Input and output contract models for one generation kind."""

    input: type[BaseModel]
    output: type[BaseModel]


@runtime_checkable
class StructuredGenerator(Protocol):
    """Anything that turns a kind plus metrics into a contract-validated result."""

    async def generate(self, kind: str, metrics: Mapping[str, Any] | BaseModel) -> BaseModel: ...


def _kind_key(kind: Any) -> str:
    return getattr(kind, "value", kind)


class GenerationClient:
    """Invokes the LLM with a contract-bound prompt and validates the reply.

    Usage::

        client = GenerationClient(provider, PromptLibrary.from_directory(path), contracts)
        result = await client.generate("diet", stripped_record)
    """

    def __init__(
        self,
        provider: LLMProvider,
        prompts: PromptLibrary,
        contracts: Mapping[str, GenerationContract],
        *,
        max_attempts: int = 1,
        retry_delay: float = 2.0,
    ) -> None:
        self.provider = provider
        self.prompts = prompts
        self.contracts = dict(contracts)
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay

    async def generate(self, kind: str, metrics: Mapping[str, Any] | BaseModel) -> BaseModel:
        """Generate and validate a result for ``kind``.

        Raises:
            GenerationError: On invalid input, provider failure, or a reply that
                does not satisfy the output contract.
        """
        key = _kind_key(kind)
        contract = self.contracts.get(key)
        if contract is None:
            raise GenerationError(f"Unknown generation kind: {key!r}", kind=key)

        request = self._validate_request(key, contract, metrics)
        try:
            template = self.prompts.get(key)
            assembled = render_prompt(template, request.model_dump(by_alias=True))
        except (PromptNotFoundError, PromptTemplateError) as exc:
            raise GenerationError(str(exc), kind=key) from exc

        system_message = build_full_system_prompt(
            assembled.system_message,
            contract.output.model_json_schema(by_alias=True),
        )
        response = await self._call_provider(
            key, system_message, assembled.user_message, template.max_tokens, template.temperature
        )

        logger.info(
            "Generation call: kind=%s, template=%s, model=%s, tokens=%d+%d, latency=%.0fms",
            key,
            template.id,
            response.model,
            response.input_tokens,
            response.output_tokens,
            response.latency_ms,
        )

        try:
            payload = extract_json_object(response.content)
            return check_contract(contract.output, payload).unwrap()
        except ContractViolation as exc:
            logger.warning("Generation reply for %s rejected: %s", key, exc.errors)
            raise GenerationError(
                f"Generated {key} result violated its contract", kind=key, reasons=exc.errors
            ) from exc

    @staticmethod
    def _validate_request(
        kind: str, contract: GenerationContract, metrics: Mapping[str, Any] | BaseModel
    ) -> BaseModel:
        if isinstance(metrics, contract.input):
            return metrics
        payload = metrics.model_dump(by_alias=True) if isinstance(metrics, BaseModel) else metrics
        check = check_contract(contract.input, payload)
        if not check.passed:
            raise GenerationError(
                f"Invalid {kind} request", kind=kind, reasons=check.errors
            )
        return check.unwrap()

    async def _call_provider(
        self,
        kind: str,
        system_message: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> ProviderResponse:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.provider.generate(
                    system_message=system_message,
                    user_message=user_message,
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
            except Exception as exc:
                if attempt >= self.max_attempts:
                    logger.error(
                        "Generation provider failed for %s after %d attempt(s): %s",
                        kind,
                        attempt,
                        exc,
                    )
                    raise GenerationError(
                        f"Generation service failed for {kind}: {exc}", kind=kind
                    ) from exc
                delay = self.retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    "Generation attempt %d/%d for %s failed (%s); retrying in %.1fs",
                    attempt,
                    self.max_attempts,
                    kind,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

ImageStyle = Literal["photorealistic", "illustrative"]

STYLE_PROMPTS: dict[str, str] = {
    "photorealistic": (
        "a high-quality, photorealistic image of {hint}, on a clean, light gray background"
    ),
    "illustrative": (
        "a dynamic, high-quality illustration of {hint}, clean vibrant colors, digital painting"
    ),
}


class ImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hint: str = Field(..., min_length=1)
    style: ImageStyle = "photorealistic"


class ImageResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl", min_length=1)


class ImageClient:
    """Produces one image reference from a short hint and a style."""

    def __init__(self, provider: ImageProvider) -> None:
        self.provider = provider

    async def generate(self, hint: str, style: str = "photorealistic") -> ImageResult:
        check = check_contract(ImageRequest, {"hint": hint, "style": style})
        if not check.passed:
            raise ImageGenerationError(f"Invalid image request: {check.errors}")
        request: ImageRequest = check.value  # type: ignore[assignment]

        prompt = STYLE_PROMPTS[request.style].format(hint=request.hint)
        try:
            response = await self.provider.generate_image(prompt)
        except Exception as exc:
            raise ImageGenerationError(f"Image generation failed for {hint!r}: {exc}") from exc

        result = check_contract(ImageResult, {"imageUrl": response.url})
        if not result.passed:
            raise ImageGenerationError(f"Image provider returned no usable URL for {hint!r}")
        logger.debug("Image generated for %r in %.0fms", hint, response.latency_ms)
        return result.value  # type: ignore[return-value]
