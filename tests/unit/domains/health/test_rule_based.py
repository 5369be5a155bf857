"""Tests for the rule-based suggestion generator."""

from __future__ import annotations

import asyncio

import pytest

from vitalplan.core.llm.client import GenerationError, StructuredGenerator
from vitalplan.domains.health.domain_logic.contracts import (
    DietarySuggestions,
    HealthSummary,
    WorkoutSuggestions,
)
from vitalplan.domains.health.domain_logic.rule_based import RuleBasedGenerator

AT_RISK = {
    "height": 170.0, "weight": 82.0, "age": 45, "bmi": 28.37, "bloodPressure": "150/95",
    "cholesterol": 220.0, "sugarLevels": 110.0, "fats": 35.0, "bloodPoints": 90.0,
}
HEALTHY = {
    "height": 175.0, "weight": 68.0, "age": 30, "bmi": 22.2, "bloodPressure": "118/76",
    "cholesterol": 170.0, "sugarLevels": 88.0, "fats": 24.0, "bloodPoints": 97.0,
}


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def generator() -> RuleBasedGenerator:
    return RuleBasedGenerator()


def test_satisfies_generator_protocol(generator):
    assert isinstance(generator, StructuredGenerator)


class TestDietary:
    def test_elevated_metrics_all_flagged_high(self, generator):
        result = _run(generator.generate("diet", AT_RISK))
        assert isinstance(result, DietarySuggestions)
        assert {a.metric: a.status for a in result.analysis} == {
            "Blood Pressure": "High",
            "Cholesterol": "High",
            "Sugar Levels": "High",
            "Fats": "High",
        }

    def test_reasons_cite_the_readings(self, generator):
        result = _run(generator.generate("diet", AT_RISK))
        reasons = " ".join(i.reason for i in result.fruits + result.foods_to_limit)
        assert "150/95" in reasons
        assert "220" in reasons

    def test_every_category_has_three_items_with_hints(self, generator):
        result = _run(generator.generate("diet", HEALTHY))
        for category in (result.fruits, result.vegetables, result.proteins,
                         result.seeds_and_nuts, result.foods_to_limit):
            assert len(category) == 3
            assert all(item.image_hint for item in category)

    def test_healthy_metrics_are_normal(self, generator):
        result = _run(generator.generate("diet", HEALTHY))
        assert all(a.status == "Normal" for a in result.analysis)
        assert "in range" in result.summary


class TestWorkout:
    def test_plan_covers_week_with_rest_day(self, generator):
        result = _run(generator.generate("workout", AT_RISK))
        assert isinstance(result, WorkoutSuggestions)
        assert [d.day for d in result.weekly_plan][0] == "Monday"
        assert result.weekly_plan[6].exercises == []

    def test_bmi_status_reported(self, generator):
        result = _run(generator.generate("workout", AT_RISK))
        bmi = next(a for a in result.analysis if a.metric == "BMI")
        assert bmi.status == "Overweight"


class TestSummary:
    def test_improvement_detected(self, generator):
        latest = dict(AT_RISK, weight=78.0, bmi=26.99, bloodPressure="138/88",
                      cholesterol=205.0, sugarLevels=100.0, fats=32.0)
        result = _run(generator.generate("summary", {"previousData": AT_RISK, "latestData": latest}))
        assert isinstance(result, HealthSummary)
        assert result.overall_status == "Improved"
        changes = {c.metric: c for c in result.metric_changes}
        assert changes["Weight"].change == "-4 kg"
        assert changes["Blood Pressure"].change == "-12/-7 mmHg"

    def test_unchanged_is_maintained(self, generator):
        result = _run(generator.generate("summary", {"previousData": HEALTHY, "latestData": HEALTHY}))
        assert result.overall_status == "Maintained"
        assert all(c.change == "Maintained" for c in result.metric_changes)


def test_invalid_input_raises(generator):
    with pytest.raises(GenerationError, match="Invalid diet request"):
        _run(generator.generate("diet", dict(AT_RISK, bloodPressure="n/a")))


def test_unknown_kind_raises(generator):
    with pytest.raises(GenerationError, match="Unknown"):
        _run(generator.generate("sleep", AT_RISK))
