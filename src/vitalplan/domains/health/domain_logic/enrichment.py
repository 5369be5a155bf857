"""Image enrichment for dietary and workout suggestions.

Flattens a suggestion result into tagged items, runs them through the
BatchedEnricher and rebuilds a copy of the result with ``image_url`` set
on every item. Nothing but ``image_url`` changes.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from vitalplan.core.enrichment.engine import BatchedEnricher, TaggedItem, reassemble
from vitalplan.core.llm.client import ImageClient
from vitalplan.domains.health.domain_logic.contracts import (
    DIETARY_CATEGORIES,
    DietarySuggestions,
    Exercise,
    SuggestionItem,
    SuggestionKind,
    WorkoutSuggestions,
)

logger = logging.getLogger(__name__)

DIET_IMAGE_STYLE = "photorealistic"
WORKOUT_IMAGE_STYLE = "illustrative"


def flatten_dietary(result: DietarySuggestions) -> list[TaggedItem[SuggestionItem]]:
    """Tag every food item with its category and position."""
    return [
        TaggedItem(item=item, group=category, index=i, hint=item.image_hint or item.name)
        for category in DIETARY_CATEGORIES
        for i, item in enumerate(getattr(result, category))
    ]


def flatten_workout(result: WorkoutSuggestions) -> list[TaggedItem[Exercise]]:
    """Tag every exercise with its day index and position within the day."""
    return [
        TaggedItem(item=exercise, group=day, index=i, hint=exercise.name)
        for day, plan in enumerate(result.weekly_plan)
        for i, exercise in enumerate(plan.exercises)
    ]


def _with_image(item, url: str):
    return item.model_copy(update={"image_url": url})


class SuggestionEnricher:
    """Attaches generated images to suggestion items."""

    def __init__(self, images: ImageClient, engine: BatchedEnricher | None = None) -> None:
        self.images = images
        self.engine = engine or BatchedEnricher()

    def _fetcher(self, style: str):
        async def fetch(hint: str) -> str:
            result = await self.images.generate(hint, style)
            return result.image_url

        return fetch

    async def enrich(self, kind: str, result: BaseModel) -> BaseModel:
        key = getattr(kind, "value", kind)
        if key == SuggestionKind.DIET.value and isinstance(result, DietarySuggestions):
            return await self.enrich_dietary(result)
        if key == SuggestionKind.WORKOUT.value and isinstance(result, WorkoutSuggestions):
            return await self.enrich_workout(result)
        logger.debug("No image enrichment for %s results", key)
        return result

    async def enrich_dietary(self, result: DietarySuggestions) -> DietarySuggestions:
        tagged = flatten_dietary(result)
        urls = await self.engine.enrich(tagged, self._fetcher(DIET_IMAGE_STYLE))
        groups = reassemble(tagged, urls, _with_image)
        update = {category: groups.get(category, getattr(result, category)) for category in DIETARY_CATEGORIES}
        logger.info("Enriched %d dietary items with images", len(tagged))
        return result.model_copy(update=update)

    async def enrich_workout(self, result: WorkoutSuggestions) -> WorkoutSuggestions:
        tagged = flatten_workout(result)
        urls = await self.engine.enrich(tagged, self._fetcher(WORKOUT_IMAGE_STYLE))
        groups = reassemble(tagged, urls, _with_image)
        plans = [
            plan.model_copy(update={"exercises": groups[day]}) if day in groups else plan
            for day, plan in enumerate(result.weekly_plan)
        ]
        logger.info("Enriched %d exercises with images", len(tagged))
        return result.model_copy(update={"weekly_plan": plans})
