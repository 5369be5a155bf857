"""Tests for SuggestionOrchestrator — fetch, cache, generate, enrich."""

from __future__ import annotations

import asyncio

import pytest

from vitalplan.core.enrichment.engine import BatchedEnricher
from vitalplan.core.llm.client import GenerationError, ImageClient
from vitalplan.core.llm.providers.mock import MockImageProvider
from vitalplan.domains.health.domain_logic.enrichment import SuggestionEnricher
from vitalplan.domains.health.domain_logic.orchestrator import NoDataError, SuggestionOrchestrator
from vitalplan.domains.health.domain_logic.rule_based import RuleBasedGenerator


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class SlowGenerator(RuleBasedGenerator):
    """Rule-based generator that yields to the loop before answering."""

    def __init__(self, delay: float = 0.01) -> None:
        super().__init__()
        self.delay = delay

    async def generate(self, kind, metrics):
        await asyncio.sleep(self.delay)
        return await super().generate(kind, metrics)


class FailingGenerator:
    def __init__(self) -> None:
        self.call_count = 0

    async def generate(self, kind, metrics):
        self.call_count += 1
        raise GenerationError("service unavailable", kind=kind)


class SpyCache:
    """Wraps a SuggestionCache and records store calls."""

    def __init__(self, inner, fail_store: bool = False) -> None:
        self.inner = inner
        self.fail_store = fail_store
        self.stored: list[tuple[str, str, str]] = []

    def lookup(self, user_id, record_id, kind):
        return self.inner.lookup(user_id, record_id, kind)

    def store(self, user_id, record_id, kind, result):
        self.stored.append((user_id, record_id, kind))
        if self.fail_store:
            raise OSError("disk full")
        self.inner.store(user_id, record_id, kind, result)


@pytest.fixture
def images() -> MockImageProvider:
    return MockImageProvider()


@pytest.fixture
def enricher(images) -> SuggestionEnricher:
    return SuggestionEnricher(ImageClient(images), BatchedEnricher(batch_size=5))


@pytest.fixture
def seeded(health_repository, record_factory):
    return health_repository.save_record(record_factory(
        blood_pressure="150/95", cholesterol=220.0, sugar_levels=110.0, fats=35.0
    ))


def test_no_record_raises_without_generating(health_repository, suggestion_cache):
    generator = RuleBasedGenerator()
    orchestrator = SuggestionOrchestrator(health_repository, suggestion_cache, generator)
    with pytest.raises(NoDataError):
        _run(orchestrator.get_suggestions("user-1", "diet"))
    assert generator.call_count == 0


def test_miss_generates_enriches_and_caches(health_repository, suggestion_cache, enricher, images, seeded):
    orchestrator = SuggestionOrchestrator(
        health_repository, suggestion_cache, RuleBasedGenerator(), enricher=enricher
    )
    outcome = _run(orchestrator.get_suggestions("user-1", "diet"))

    assert not outcome.cached
    assert outcome.record_id == seeded.id
    assert outcome.result["analysis"][0]["status"] == "High"
    assert all(item["imageUrl"] for item in outcome.result["fruits"])
    assert images.call_count == 15
    assert suggestion_cache.lookup("user-1", seeded.id, "diet") == outcome.result


def test_second_call_is_cache_hit(health_repository, suggestion_cache, enricher, images, seeded):
    generator = RuleBasedGenerator()
    orchestrator = SuggestionOrchestrator(
        health_repository, suggestion_cache, generator, enricher=enricher
    )
    first = _run(orchestrator.get_suggestions("user-1", "workout"))
    second = _run(orchestrator.get_suggestions("user-1", "workout"))

    assert second.cached
    assert second.result == first.result
    assert generator.call_count == 1
    assert images.call_count == sum(len(d["exercises"]) for d in first.result["weeklyPlan"])


def test_new_record_misses_cache(health_repository, suggestion_cache, record_factory, seeded):
    generator = RuleBasedGenerator()
    orchestrator = SuggestionOrchestrator(health_repository, suggestion_cache, generator)
    _run(orchestrator.get_suggestions("user-1", "diet"))
    newer = health_repository.save_record(record_factory(created_at="2999-01-01T00:00:00+00:00"))
    outcome = _run(orchestrator.get_suggestions("user-1", "diet"))
    assert outcome.record_id == newer.id
    assert not outcome.cached
    assert generator.call_count == 2


def test_generation_failure_never_stores(health_repository, suggestion_cache, seeded):
    cache = SpyCache(suggestion_cache)
    generator = FailingGenerator()
    orchestrator = SuggestionOrchestrator(health_repository, cache, generator)
    with pytest.raises(GenerationError):
        _run(orchestrator.get_suggestions("user-1", "diet"))
    assert cache.stored == []
    assert generator.call_count == 1


def test_cache_write_failure_is_swallowed(health_repository, suggestion_cache, seeded):
    cache = SpyCache(suggestion_cache, fail_store=True)
    orchestrator = SuggestionOrchestrator(health_repository, cache, RuleBasedGenerator())
    outcome = _run(orchestrator.get_suggestions("user-1", "diet"))
    assert len(outcome.result["fruits"]) == 3
    assert cache.stored == [("user-1", seeded.id, "diet")]


def test_concurrent_misses_share_one_generation(health_repository, suggestion_cache, seeded):
    generator = SlowGenerator()
    cache = SpyCache(suggestion_cache)
    orchestrator = SuggestionOrchestrator(health_repository, cache, generator)

    async def _both():
        return await asyncio.gather(
            orchestrator.get_suggestions("user-1", "diet"),
            orchestrator.get_suggestions("user-1", "diet"),
        )

    first, second = _run(_both())
    assert first.result == second.result
    assert generator.call_count == 1
    assert len(cache.stored) == 1


def test_cancelled_caller_does_not_stop_shared_generation(health_repository, suggestion_cache, seeded):
    generator = SlowGenerator(delay=0.05)
    orchestrator = SuggestionOrchestrator(health_repository, suggestion_cache, generator)

    async def _cancel_one():
        first = asyncio.ensure_future(orchestrator.get_suggestions("user-1", "diet"))
        second = asyncio.ensure_future(orchestrator.get_suggestions("user-1", "diet"))
        await asyncio.sleep(0.01)
        first.cancel()
        return await asyncio.gather(first, second, return_exceptions=True)

    first, second = _run(_cancel_one())
    assert isinstance(first, asyncio.CancelledError)
    assert not second.cached
    assert len(second.result["fruits"]) == 3
    assert generator.call_count == 1
    assert suggestion_cache.count() == 1


def test_enrichment_limited_to_configured_kinds(health_repository, suggestion_cache, enricher, images, seeded):
    orchestrator = SuggestionOrchestrator(
        health_repository, suggestion_cache, RuleBasedGenerator(),
        enricher=enricher, enrich_kinds=["workout"],
    )
    outcome = _run(orchestrator.get_suggestions("user-1", "diet"))
    assert "imageUrl" not in outcome.result["fruits"][0]
    assert images.call_count == 0


def test_summary_kind_not_served_by_get_suggestions(health_repository, suggestion_cache, seeded):
    orchestrator = SuggestionOrchestrator(health_repository, suggestion_cache, RuleBasedGenerator())
    with pytest.raises(GenerationError, match="Unsupported"):
        _run(orchestrator.get_suggestions("user-1", "summary"))


class TestProgressSummary:
    def test_needs_two_records(self, health_repository, suggestion_cache, seeded):
        generator = RuleBasedGenerator()
        orchestrator = SuggestionOrchestrator(health_repository, suggestion_cache, generator)
        with pytest.raises(NoDataError, match="two"):
            _run(orchestrator.get_progress_summary("user-1"))
        assert generator.call_count == 0

    def test_compares_latest_two(self, health_repository, suggestion_cache, record_factory, seeded):
        latest = health_repository.save_record(record_factory(
            weight=66.0, blood_pressure="128/82", cholesterol=190.0, sugar_levels=95.0,
            fats=28.0, bmi=21.55, created_at="2999-01-01T00:00:00+00:00",
        ))
        orchestrator = SuggestionOrchestrator(health_repository, suggestion_cache, RuleBasedGenerator())
        outcome = _run(orchestrator.get_progress_summary("user-1"))

        assert outcome.record_id == latest.id
        assert outcome.result["overallStatus"] == "Improved"
        assert len(outcome.result["metricChanges"]) == 6
        assert suggestion_cache.count() == 0
