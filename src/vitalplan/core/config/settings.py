"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VitalPlan server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback; there is no auth layer in front of the tools.
    vitalplan_host: str = "127.0.0.1"
    vitalplan_port: int = 8001
    vitalplan_log_level: str = "info"
    vitalplan_allow_insecure_bind: bool = False

    # Suggestion generation
    llm_provider: Literal["anthropic", "openai", "gemini", "mock"] = "gemini"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash-latest"
    generation_max_attempts: int = 1
    generation_retry_delay: float = 2.0

    # Image enrichment
    image_provider: Literal["gemini", "openai", "mock"] = "gemini"
    gemini_image_model: str = "gemini-2.0-flash-preview-image-generation"
    openai_image_model: str = "gpt-image-1"
    enrichment_batch_size: int = 5
    enrichment_kinds: list[str] = ["diet", "workout"]
    placeholder_image_url: str = "https://placehold.co/600x400?text=No+Image"

    # Storage
    db_path: str = "~/.vitalplan/health.db"
    encryption_key: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
