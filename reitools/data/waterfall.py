"""Data acquisition waterfall: cache → priority sources → AI estimate.

Sources are tried one at a time in priority order. A source is skipped when
its quota is at the safety threshold, and any exception or timeout falls
through to the next one. The AI estimate runs last regardless of quota.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, TypeVar

from reitools.config import settings
from reitools.data.base import ComparableSource, QuotaCacheStore, requests_since
from reitools.data.errors import AllSourcesFailed
from reitools.data.sources.ai_estimate import AIEstimateSource
from reitools.data.sources.redfin import RedfinSource
from reitools.data.sources.us_real_estate import USRealEstateSource
from reitools.data.sources.zillow import ZillowSource
from reitools.models.property import ComparableProperty, PropertyQuery, validate_comparables

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def first_success(
    candidates: Iterable[T],
    attempt: Callable[[T], Awaitable[list[R]]],
    name: Callable[[T], str],
    timeout: float | None = None,
    failures: dict[str, str] | None = None,
) -> tuple[T, list[R]]:
    """Return the first candidate whose attempt yields a non-empty list.

    Exceptions (timeouts included) and empty results are recorded in
    `failures` and the next candidate is tried. Raises AllSourcesFailed
    when nothing succeeds.
    """
    failures = failures if failures is not None else {}
    for candidate in candidates:
        label = name(candidate)
        try:
            result = await asyncio.wait_for(attempt(candidate), timeout)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %ss", label, timeout)
            failures[label] = "timeout"
            continue
        except Exception as e:
            logger.warning("%s failed: %s", label, e)
            failures[label] = str(e) or type(e).__name__
            continue
        if result:
            return candidate, result
        logger.info("%s returned no usable results", label)
        failures[label] = "no usable results"
    raise AllSourcesFailed(failures)


def order_sources(sources: list[ComparableSource], primary: str | None = None) -> list[ComparableSource]:
    """Move the primary source, if any, to the front of the priority list."""
    if not primary:
        return list(sources)
    if primary not in {s.source_id for s in sources}:
        raise ValueError(f"Unknown primary source: {primary}")
    return [s for s in sources if s.source_id == primary] + [
        s for s in sources if s.source_id != primary
    ]


@dataclass(frozen=True)
class Acquisition:
    comps: list[ComparableProperty]
    source: str
    from_cache: bool = False


class DataWaterfall:
    def __init__(
        self,
        store: QuotaCacheStore,
        sources: list[ComparableSource] | None = None,
        fallback: ComparableSource | None = None,
        timeout: float | None = None,
        primary: str | None = None,
    ):
        self.store = store
        if sources is None:
            sources = [ZillowSource(), USRealEstateSource(), RedfinSource()]
        self.sources = order_sources(sources, primary if primary is not None else settings.primary_source)
        self.fallback = fallback if fallback is not None else AIEstimateSource()
        self.timeout = timeout if timeout is not None else settings.adapter_timeout_seconds

    async def fetch_comparables(
        self, query: PropertyQuery, force_refresh: bool = False
    ) -> list[ComparableProperty]:
        """Resolve comparables for a property. Raises AllSourcesFailed."""
        return (await self.acquire(query, force_refresh)).comps

    async def acquire(self, query: PropertyQuery, force_refresh: bool = False) -> Acquisition:
        if force_refresh:
            logger.info("Force refresh requested, bypassing cache for %s", query.full)
        else:
            cached = self._store_call(None, self.store.get_cached, query)
            if cached:
                logger.info("Using %d cached comps for %s", len(cached), query.full)
                return Acquisition(comps=cached, source="cache", from_cache=True)

        failures: dict[str, str] = {}
        eligible: list[ComparableSource] = []
        for source in self.sources:
            if self._store_call(True, self.store.is_quota_available, source.source_id, source.window):
                eligible.append(source)
            else:
                logger.warning("%s quota exhausted, skipping", source.source_id)
                failures[source.source_id] = "quota exhausted"
        eligible.append(self.fallback)
        sent_before = {s.source_id: getattr(s, "requests", 0) for s in eligible}

        async def attempt(source: ComparableSource) -> list[ComparableProperty]:
            return validate_comparables(await source.fetch(query), source.source_id)

        winner, comps = await first_success(
            eligible,
            attempt,
            name=lambda s: s.source_id,
            timeout=self.timeout,
            failures=failures,
        )

        spent = requests_since(winner, sent_before[winner.source_id])
        self._store_call(None, self.store.increment_usage, winner.source_id, winner.window, spent)
        self._store_call(None, self.store.record_success, winner.source_id)
        self._store_call(None, self.store.set_cached, query, comps)
        logger.info("%s supplied %d comps for %s", winner.source_id, len(comps), query.full)
        return Acquisition(comps=comps, source=winner.source_id)

    def _store_call(self, default, fn: Callable, *args):
        # Store outages must never block an analysis: miss the cache, allow the quota
        try:
            return fn(*args)
        except Exception as e:
            logger.warning("Quota/cache store unavailable (%s), continuing without it", e)
            return default
