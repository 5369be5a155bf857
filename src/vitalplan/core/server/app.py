"""VitalPlan MCP Server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastmcp import FastMCP

from vitalplan.core.config.settings import Settings, get_settings
from vitalplan.core.enrichment.engine import BatchedEnricher
from vitalplan.core.llm.client import GenerationClient, ImageClient, StructuredGenerator
from vitalplan.core.llm.prompts import PromptLibrary
from vitalplan.core.llm.provider import create_image_provider, create_provider
from vitalplan.core.storage.cache import SuggestionCache
from vitalplan.core.storage.database import HealthDatabase
from vitalplan.core.storage.encryption import EncryptionError, FieldEncryptor
from vitalplan.core.storage.repository import HealthRepository
from vitalplan.domains.health.domain_logic.contracts import GENERATION_CONTRACTS
from vitalplan.domains.health.domain_logic.enrichment import SuggestionEnricher
from vitalplan.domains.health.domain_logic.orchestrator import SuggestionOrchestrator
from vitalplan.domains.health.domain_logic.rule_based import RuleBasedGenerator
from vitalplan.domains.health.prompts.health_prompts import register_health_prompts
from vitalplan.domains.health.tools.health_data_tools import register_health_data_tools
from vitalplan.domains.health.tools.suggestion_tools import register_suggestion_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "VitalPlan"
SERVER_VERSION = "0.1.0"

# Prompt YAML definitions live under src/vitalplan/domains/health/prompts/templates/
_PROMPT_DIR = (
    Path(__file__).resolve().parent.parent.parent / "domains" / "health" / "prompts" / "templates"
)


def _build_storage(settings: Settings) -> tuple[HealthRepository, SuggestionCache]:
    db_path = settings.db_path
    key = settings.encryption_key
    encryptor: FieldEncryptor | None = None
    if key:
        try:
            encryptor = FieldEncryptor(key)
        except EncryptionError as exc:
            logger.error("Invalid ENCRYPTION_KEY: %s", exc)
    if encryptor is None:
        logger.warning(
            "No usable ENCRYPTION_KEY configured; using an in-memory store with an "
            "ephemeral key. Data will not survive a restart."
        )
        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        db_path = ":memory:"

    database = HealthDatabase(db_path)
    database.initialize()
    logger.info("Health store initialized: %s (schema v%d)", db_path, database.get_schema_version())
    return HealthRepository(database, encryptor), SuggestionCache(database, encryptor)


def _build_generator(settings: Settings) -> StructuredGenerator:
    keys = {
        "anthropic": (settings.anthropic_api_key, settings.anthropic_model),
        "openai": (settings.openai_api_key, settings.openai_model),
        "gemini": (settings.gemini_api_key, settings.gemini_model),
    }
    api_key, model = keys.get(settings.llm_provider, ("", ""))
    if not api_key:
        if settings.llm_provider != "mock":
            logger.warning(
                "No API key configured for provider '%s'; using rule-based suggestions",
                settings.llm_provider,
            )
        return RuleBasedGenerator()

    prompts = PromptLibrary.from_directory(_PROMPT_DIR)
    logger.info("Loaded %d prompt templates from %s", len(prompts), _PROMPT_DIR)
    provider = create_provider(provider_name=settings.llm_provider, api_key=api_key, model=model)
    return GenerationClient(
        provider,
        prompts,
        GENERATION_CONTRACTS,
        max_attempts=settings.generation_max_attempts,
        retry_delay=settings.generation_retry_delay,
    )


def _build_image_client(settings: Settings) -> ImageClient:
    if settings.image_provider == "gemini" and settings.gemini_api_key:
        provider = create_image_provider(
            "gemini", api_key=settings.gemini_api_key, model=settings.gemini_image_model
        )
    elif settings.image_provider == "openai" and settings.openai_api_key:
        provider = create_image_provider(
            "openai", api_key=settings.openai_api_key, model=settings.openai_image_model
        )
    else:
        if settings.image_provider != "mock":
            logger.warning(
                "No API key configured for image provider '%s'; using mock images",
                settings.image_provider,
            )
        provider = create_image_provider("mock")
    return ImageClient(provider)


def create_app(
    *,
    repository_override: HealthRepository | None = None,
    cache_override: SuggestionCache | None = None,
    generator_override: StructuredGenerator | None = None,
    image_client_override: ImageClient | None = None,
) -> FastMCP:
    """Create and configure the VitalPlan MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the encrypted health store and suggestion cache
    3. Chooses the suggestion generator (LLM-backed or rule-based)
    4. Wires image enrichment and the suggestion orchestrator
    5. Registers all tools and prompts
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "VitalPlan health tracking server. Log biometric readings, review "
            "history, and get personalized dietary suggestions, weekly workout "
            "plans and progress summaries."
        ),
    )

    # --- Storage ---
    if repository_override is not None and cache_override is not None:
        repository, cache = repository_override, cache_override
    else:
        repository, cache = _build_storage(settings)
        repository = repository_override or repository
        cache = cache_override or cache

    # --- Generation and enrichment ---
    generator = generator_override or _build_generator(settings)
    image_client = image_client_override or _build_image_client(settings)
    enricher = SuggestionEnricher(
        image_client,
        BatchedEnricher(
            batch_size=settings.enrichment_batch_size,
            placeholder_url=settings.placeholder_image_url,
        ),
    )
    orchestrator = SuggestionOrchestrator(
        repository,
        cache,
        generator,
        enricher=enricher,
        enrich_kinds=settings.enrichment_kinds,
    )

    # --- Register tools ---
    @server.tool
    async def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "generator": type(generator).__name__,
            "records_stored": repository.count_records(),
            "suggestions_cached": cache.count(),
        }

    register_health_data_tools(server, repository)
    logger.info("Health data tools registered")

    register_suggestion_tools(server, orchestrator)
    logger.info("Suggestion tools registered (generator: %s)", type(generator).__name__)

    # --- Register prompts ---
    register_health_prompts(server)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
