"""MCP Prompts — pre-built interaction templates for the suggestion journeys."""

from __future__ import annotations

from fastmcp import FastMCP


def register_health_prompts(mcp: FastMCP) -> None:
    """Register health domain MCP prompts."""

    @mcp.prompt()
    def meal_plan_prompt(user_id: str) -> str:
        """Prompt template for turning dietary suggestions into a meal plan."""
        return f"""Please fetch my dietary suggestions (user {user_id}) and help me:

1. Understand which of my readings need the most attention
2. Build three simple days of meals from the suggested foods
3. Swap out the foods I should limit for better alternatives

Keep it practical: ingredients I can buy this week."""

    @mcp.prompt()
    def weekly_training_prompt(user_id: str, available_minutes: int = 30) -> str:
        """Prompt template for adapting the weekly workout plan to a schedule."""
        return f"""Please fetch my workout suggestions (user {user_id}).
I have about {available_minutes} minutes a day. Adapt the weekly plan so it fits,
keeping the rest day, and tell me which exercises matter most for my readings."""

    @mcp.prompt()
    def progress_check_prompt(user_id: str) -> str:
        """Prompt template for reviewing progress between the last two readings."""
        return f"""Please get my progress summary (user {user_id}) and tell me:

1. What improved and what slipped since my previous reading
2. Whether my current diet and workout suggestions still fit
3. One concrete goal for my next reading"""
