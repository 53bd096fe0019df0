"""Protocol definitions for data sources and the quota/cache store.

Each protocol defines the interface that concrete implementations must satisfy.
"""

from decimal import Decimal
from typing import Protocol, runtime_checkable

from reitools.models.property import ComparableProperty, PricePoint, PropertyQuery
from reitools.models.usage import QuotaWindow


@runtime_checkable
class ComparableSource(Protocol):
    source_id: str
    window: QuotaWindow

    async def fetch(self, query: PropertyQuery) -> list[ComparableProperty]:
        """Fetch comparable sales for a property, or raise."""
        ...


@runtime_checkable
class ValuationSource(Protocol):
    source_id: str

    async def get_valuation(self, query: PropertyQuery) -> Decimal | None:
        """Get an automated value estimate."""
        ...


@runtime_checkable
class PriceHistorySource(Protocol):
    async def get_price_history(self, query: PropertyQuery) -> list[PricePoint]:
        """Get dated sale prices for a property, oldest first."""
        ...


@runtime_checkable
class QuotaCacheStore(Protocol):
    def get_cached(self, query: PropertyQuery) -> list[ComparableProperty] | None:
        """Return cached comparables, or None if missing or expired."""
        ...

    def set_cached(self, query: PropertyQuery, comps: list[ComparableProperty]) -> None:
        """Store comparables for a query, replacing any previous entry."""
        ...

    def get_usage(self, source: str, window: QuotaWindow) -> int:
        """Calls recorded for a source in the current period."""
        ...

    def is_quota_available(self, source: str, window: QuotaWindow) -> bool:
        """True while usage is below the source's safety threshold."""
        ...

    def increment_usage(self, source: str, window: QuotaWindow, n: int = 1) -> int:
        """Add to a source's counter and return the new total."""
        ...

    def reset_usage(self, window: QuotaWindow) -> None:
        """Clear current-period counters for every source in a window."""
        ...

    def record_success(self, source: str) -> None:
        """Remember the last source that returned data."""
        ...


def requests_since(source: object, before: int) -> int:
    """Billable requests a source sent since its counter read `before`.

    Sources that do not count their own requests are charged one per call.
    """
    sent = getattr(source, "requests", None)
    if not isinstance(sent, int):
        return 1
    return max(1, sent - before)
