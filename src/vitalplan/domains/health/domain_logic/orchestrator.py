"""Suggestion orchestration.

Sequences one request for suggestions:

    Fetching -> CacheCheck -> Generating -> Enriching -> Caching -> Done

with two fatal exits, NoDataError (no record to work from) and
GenerationError (the generator failed or broke its contract). The cache
entry is written once per miss, after enrichment, so a cache hit returns
the images too. Cache write failures and per-item image failures are
logged and absorbed.

Concurrent misses for the same (user, record, kind) share one in-flight
task instead of generating twice. A cancelled caller leaves that task
running for the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from vitalplan.core.llm.client import GenerationError, StructuredGenerator
from vitalplan.core.storage.cache import SuggestionCache, cache_key
from vitalplan.core.storage.repository import HealthRepository
from vitalplan.domains.health.domain_logic.contracts import SuggestionKind
from vitalplan.domains.health.domain_logic.enrichment import SuggestionEnricher

logger = logging.getLogger(__name__)

CACHEABLE_KINDS = (SuggestionKind.DIET.value, SuggestionKind.WORKOUT.value)


class NoDataError(Exception):
    """The user has no health record to base suggestions on."""


class State(str, Enum):
    FETCHING = "fetching"
    CACHE_CHECK = "cache_check"
    GENERATING = "generating"
    ENRICHING = "enriching"
    CACHING = "caching"
    DONE = "done"


@dataclass(frozen=True)
class SuggestionOutcome:
    kind: str
    record_id: str
    result: dict[str, Any]
    cached: bool = False


class SuggestionOrchestrator:
    """Fetch latest record, consult the cache, generate, enrich and cache."""

    def __init__(
        self,
        repository: HealthRepository,
        cache: SuggestionCache,
        generator: StructuredGenerator,
        enricher: SuggestionEnricher | None = None,
        enrich_kinds: Iterable[str] = CACHEABLE_KINDS,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.generator = generator
        self.enricher = enricher
        self.enrich_kinds = {getattr(k, "value", k) for k in enrich_kinds}
        self._in_flight: dict[str, asyncio.Task[SuggestionOutcome]] = {}

    async def get_suggestions(self, user_id: str, kind: str) -> SuggestionOutcome:
        """Return suggestions of ``kind`` for the user's latest record.

        Raises:
            NoDataError: The user has no record yet.
            GenerationError: Generation failed; nothing was cached.
        """
        key = getattr(kind, "value", kind)
        if key not in CACHEABLE_KINDS:
            raise GenerationError(f"Unsupported suggestion kind: {key!r}", kind=key)

        self._trace(State.FETCHING, user_id, key)
        record = self.repository.get_latest_record(user_id)
        if record is None:
            raise NoDataError(f"No health data found for user {user_id!r}")

        self._trace(State.CACHE_CHECK, user_id, key)
        cached = self.cache.lookup(user_id, record.id, key)
        if cached is not None:
            self._trace(State.DONE, user_id, key)
            return SuggestionOutcome(kind=key, record_id=record.id, result=cached, cached=True)

        ck = cache_key(user_id, record.id, key)
        task = self._in_flight.get(ck)
        if task is None:
            task = asyncio.ensure_future(self._produce(user_id, record.id, key, record.metrics()))
            self._in_flight[ck] = task
            task.add_done_callback(lambda _t, ck=ck: self._in_flight.pop(ck, None))
        else:
            logger.info("Joining in-flight %s generation for %s", key, ck)
        return await asyncio.shield(task)

    async def _produce(
        self, user_id: str, record_id: str, kind: str, metrics: dict[str, Any]
    ) -> SuggestionOutcome:
        self._trace(State.GENERATING, user_id, kind)
        result = await self.generator.generate(kind, metrics)

        if self.enricher is not None and kind in self.enrich_kinds:
            self._trace(State.ENRICHING, user_id, kind)
            result = await self.enricher.enrich(kind, result)

        payload = result.model_dump(by_alias=True, exclude_none=True)

        self._trace(State.CACHING, user_id, kind)
        try:
            self.cache.store(user_id, record_id, kind, payload)
        except Exception:
            logger.exception("Failed to cache %s suggestions for record %s", kind, record_id)

        self._trace(State.DONE, user_id, kind)
        return SuggestionOutcome(kind=kind, record_id=record_id, result=payload)

    async def get_progress_summary(self, user_id: str) -> SuggestionOutcome:
        """Compare the two most recent records. Not cached, not enriched."""
        records = self.repository.get_records(user_id, limit=2)
        if len(records) < 2:
            raise NoDataError(
                f"At least two health records are needed for a progress summary "
                f"(user {user_id!r} has {len(records)})"
            )
        latest, previous = records
        result = await self.generator.generate(
            SuggestionKind.SUMMARY.value,
            {"previousData": previous.metrics(), "latestData": latest.metrics()},
        )
        return SuggestionOutcome(
            kind=SuggestionKind.SUMMARY.value,
            record_id=latest.id,
            result=result.model_dump(by_alias=True, exclude_none=True),
        )

    @staticmethod
    def _trace(state: State, user_id: str, kind: str) -> None:
        logger.debug("Suggestions[%s/%s]: %s", user_id, kind, state.value)
