"""Integration tests for the VitalPlan MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from vitalplan.core.server.app import create_app
from vitalplan.core.config.settings import get_settings
from vitalplan.core.server.main import _check_bind, _is_loopback_host


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


ALL_EXPECTED_TOOLS = [
    "health_check",
    "log_health_data",
    "get_health_history",
    "get_dietary_suggestions",
    "get_workout_suggestions",
    "get_progress_summary",
]


@pytest.fixture
def client():
    """Server built purely from the (hermetic) environment: mock LLM, mock images, in-memory store."""
    return Client(create_app())


def test_server_starts_and_lists_tools(client):
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_reports_rule_based_fallback(client):
    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            body = json.loads(result.content[0].text)
            assert body["status"] == "ok"
            assert body["generator"] == "RuleBasedGenerator"
            assert body["records_stored"] == 0
    _run(_check())


def test_prompts_registered(client):
    async def _check():
        async with client:
            prompts = await client.list_prompts()
            assert "meal_plan_prompt" in [p.name for p in prompts]
    _run(_check())


def test_end_to_end_dietary_flow(client):
    async def _check():
        async with client:
            await client.call_tool("log_health_data", {
                "user_id": "demo", "height": 165, "weight": 60, "age": 28,
                "blood_pressure": "118/76", "cholesterol": 170, "sugar_levels": 85,
                "fats": 24, "blood_points": 96,
            })
            result = await client.call_tool("get_dietary_suggestions", {"user_id": "demo"})
            body = json.loads(result.content[0].text)
            assert body["status"] == "ok"
            assert all(a["status"] == "Normal" for a in body["suggestions"]["analysis"])
            assert body["suggestions"]["foodsToLimit"][0]["imageUrl"]

            status = json.loads((await client.call_tool("health_check", {})).content[0].text)
            assert status["suggestions_cached"] == 1
    _run(_check())


@pytest.mark.parametrize("host, expected", [
    ("127.0.0.1", True), ("::1", True), ("localhost", True), ("0.0.0.0", False), ("example.com", False),
])
def test_loopback_guard(host, expected):
    assert _is_loopback_host(host) is expected


def test_public_bind_refused_without_override(monkeypatch):
    monkeypatch.setenv("VITALPLAN_HOST", "0.0.0.0")
    with pytest.raises(RuntimeError, match="non-loopback"):
        _check_bind(get_settings())
    monkeypatch.setenv("VITALPLAN_ALLOW_INSECURE_BIND", "true")
    _check_bind(get_settings())
