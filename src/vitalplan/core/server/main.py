"""VitalPlan server entry point — ``python -m vitalplan.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vitalplan.core.config.settings import Settings, get_settings
from vitalplan.core.server.app import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _check_bind(settings: Settings) -> None:
    """No auth layer sits in front of the tools: stay on loopback unless overridden."""
    if settings.vitalplan_allow_insecure_bind or _is_loopback_host(settings.vitalplan_host):
        return
    raise RuntimeError(
        f"Refusing to bind VitalPlan to non-loopback host {settings.vitalplan_host!r}. "
        "Set VITALPLAN_ALLOW_INSECURE_BIND=true to override (unsafe)."
    )


def run() -> None:
    """Start the VitalPlan MCP server over Streamable HTTP."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.vitalplan_log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    _check_bind(settings)

    logging.getLogger(__name__).info(
        "Starting VitalPlan on %s:%d (suggestions: %s, images: %s)",
        settings.vitalplan_host,
        settings.vitalplan_port,
        settings.llm_provider,
        settings.image_provider,
    )
    create_app().run(
        transport="streamable-http",
        host=settings.vitalplan_host,
        port=settings.vitalplan_port,
    )


if __name__ == "__main__":
    run()
