"""MCP tools for dietary and workout suggestions and progress summaries."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from vitalplan.core.llm.client import GenerationError
from vitalplan.domains.health.domain_logic.contracts import SuggestionKind
from vitalplan.domains.health.domain_logic.orchestrator import NoDataError, SuggestionOutcome

if TYPE_CHECKING:
    from vitalplan.domains.health.domain_logic.orchestrator import SuggestionOrchestrator

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No health data found. Log your readings with log_health_data first."
RETRY_MESSAGE = "Could not generate suggestions right now. Please try again later."


def _outcome_json(outcome: SuggestionOutcome) -> str:
    return json.dumps({
        "status": "ok",
        "kind": outcome.kind,
        "record_id": outcome.record_id,
        "cached": outcome.cached,
        "suggestions": outcome.result,
    })


def _error_json(status: str, message: str, **extra) -> str:
    return json.dumps({"status": status, "message": message, **extra})


def register_suggestion_tools(mcp: FastMCP, orchestrator: SuggestionOrchestrator) -> None:
    """Register suggestion tools on the MCP server."""

    async def _suggest(user_id: str, kind: SuggestionKind) -> str:
        try:
            outcome = await orchestrator.get_suggestions(user_id, kind.value)
        except NoDataError as exc:
            logger.info("%s suggestions requested without data: %s", kind.value, exc)
            return _error_json("no_data", NO_DATA_MESSAGE)
        except GenerationError as exc:
            logger.error("%s suggestions failed for user %s: %s", kind.value, user_id, exc)
            return _error_json("error", RETRY_MESSAGE)
        return _outcome_json(outcome)

    @mcp.tool
    async def get_dietary_suggestions(ctx: Context, user_id: str) -> str:
        """Get personalized food suggestions based on your latest health reading.

        Returns an analysis of blood pressure, cholesterol, sugar and fats,
        plus fruits, vegetables, proteins, seeds and nuts to favour and foods
        to limit, each with a reason and an image.

        Args:
            user_id: Owner of the health records.
        """
        return await _suggest(user_id, SuggestionKind.DIET)

    @mcp.tool
    async def get_workout_suggestions(ctx: Context, user_id: str) -> str:
        """Get a seven-day workout plan based on your latest health reading.

        Args:
            user_id: Owner of the health records.
        """
        return await _suggest(user_id, SuggestionKind.WORKOUT)

    @mcp.tool
    async def get_progress_summary(ctx: Context, user_id: str) -> str:
        """Compare your two most recent readings and summarize the change.

        Args:
            user_id: Owner of the health records.
        """
        try:
            outcome = await orchestrator.get_progress_summary(user_id)
        except NoDataError as exc:
            return _error_json(
                "insufficient_data",
                "At least two health readings are needed for a progress summary.",
                detail=str(exc),
            )
        except GenerationError as exc:
            logger.error("Progress summary failed for user %s: %s", user_id, exc)
            return _error_json("error", RETRY_MESSAGE)
        return _outcome_json(outcome)
