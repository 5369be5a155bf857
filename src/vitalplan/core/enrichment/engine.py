"""Batched enrichment — rate-limited fan-out with order-preserving reassembly.

Items from several groups are flattened into one list, each carrying an
explicit origin tag (group, index). Requests run in fixed-size batches:
every request in a batch starts concurrently, and the next batch starts
only once all of them have settled. A failed request becomes a
placeholder; the output always has one value per input item, in order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 5
DEFAULT_PLACEHOLDER_URL = "https://placehold.co/600x400?text=No+Image"


class ItemEnrichmentError(Exception):
    """A single item's enrichment failed. Absorbed, never surfaced."""

    def __init__(self, group: Hashable, index: int, hint: str, cause: BaseException) -> None:
        self.group = group
        self.index = index
        self.hint = hint
        self.cause = cause
        super().__init__(f"Enrichment failed for {group!r}[{index}] ({hint!r}): {cause}")


@dataclass(frozen=True)
class TaggedItem(Generic[T]):
    """A flattened item with its origin in the nested structure."""

    item: T
    group: Hashable
    index: int
    hint: str


@dataclass(frozen=True)
class ItemOutcome:
    """Outcome of one enrichment request: a value or an error, never both."""

    value: str | None = None
    error: ItemEnrichmentError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def resolve_image(outcome: ItemOutcome, placeholder: str) -> str:
    """Fold an outcome into the real value or the placeholder."""
    return outcome.value if outcome.ok else placeholder  # type: ignore[return-value]


def reassemble(
    tagged: Sequence[TaggedItem[T]],
    values: Sequence[str],
    attach: Callable[[T, str], T],
) -> dict[Hashable, list[T]]:
    """Rebuild ``{group: [items]}`` from flattened items and their values.

    Placement uses each item's origin tag only. Groups that had no items
    are absent from the result.
    """
    if len(tagged) != len(values):
        raise ValueError(f"{len(tagged)} items but {len(values)} values")

    groups: dict[Hashable, dict[int, T]] = {}
    for tag, value in zip(tagged, values):
        groups.setdefault(tag.group, {})[tag.index] = attach(tag.item, value)
    return {group: [slots[i] for i in sorted(slots)] for group, slots in groups.items()}


class BatchedEnricher:
    """Runs one async request per tagged item under a batch-size cap.

    Usage::

        enricher = BatchedEnricher(batch_size=5, placeholder_url="...")
        urls = await enricher.enrich(tagged_items, fetch_image)
    """

    def __init__(
        self,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        placeholder_url: str = DEFAULT_PLACEHOLDER_URL,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self.placeholder_url = placeholder_url

    async def fetch_all(
        self,
        tagged: Sequence[TaggedItem[Any]],
        fetch: Callable[[str], Awaitable[str]],
    ) -> list[ItemOutcome]:
        """Issue every request, batch by batch, returning one outcome per item."""
        outcomes: list[ItemOutcome] = []
        batches = partition(tagged, self.batch_size)
        for number, batch in enumerate(batches, 1):
            logger.debug("Dispatching enrichment batch %d/%d (%d items)", number, len(batches), len(batch))
            settled = await asyncio.gather(
                *(fetch(tag.hint) for tag in batch), return_exceptions=True
            )
            outcomes.extend(_to_outcome(tag, result) for tag, result in zip(batch, settled))
        return outcomes

    async def enrich(
        self,
        tagged: Sequence[TaggedItem[Any]],
        fetch: Callable[[str], Awaitable[str]],
    ) -> list[str]:
        """Return one value per item, in input order; failures become the placeholder."""
        outcomes = await self.fetch_all(tagged, fetch)
        failures = [o.error for o in outcomes if not o.ok]
        for error in failures:
            logger.warning("%s", error)
        if failures:
            logger.warning(
                "%d of %d enrichment requests failed; placeholders substituted",
                len(failures),
                len(outcomes),
            )
        return [resolve_image(o, self.placeholder_url) for o in outcomes]


def _to_outcome(tag: TaggedItem[Any], result: Any) -> ItemOutcome:
    if isinstance(result, BaseException):
        return ItemOutcome(error=ItemEnrichmentError(tag.group, tag.index, tag.hint, result))
    if not isinstance(result, str) or not result:
        cause = ValueError(f"empty or non-string result: {result!r}")
        return ItemOutcome(error=ItemEnrichmentError(tag.group, tag.index, tag.hint, cause))
    return ItemOutcome(value=result)
