"""Zillow data via the private-zillow RapidAPI gateway.

Comps, zestimates, and price history are all keyed by zpid. The address is
resolved to a zpid once and remembered for the life of the adapter, so one
analysis spends a single `/property` call.
"""

import logging
from decimal import Decimal

from reitools.data.errors import DataSourceError
from reitools.data.sources.rapidapi import RapidAPIClient, pick
from reitools.models.property import (
    ComparableProperty,
    PricePoint,
    PropertyQuery,
    parse_sale_date,
    validate_comparables,
)
from reitools.models.usage import QuotaWindow

logger = logging.getLogger(__name__)

MAX_COMPS = 10


class ZillowSource(RapidAPIClient):
    host = "private-zillow.p.rapidapi.com"
    source_id = "private_zillow"
    window = QuotaWindow.MONTH

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._zpids: dict[str, str] = {}

    async def _zpid(self, query: PropertyQuery) -> str:
        cached = self._zpids.get(query.cache_key)
        if cached is not None:
            return cached
        data = await self._get("/property", {"address": query.full})
        zpid = pick(data, "zpid", "data.zpid") if isinstance(data, dict) else None
        if not zpid:
            raise DataSourceError(self.source_id, f"no zpid for {query.full}")
        self._zpids[query.cache_key] = str(zpid)
        return str(zpid)

    async def fetch(self, query: PropertyQuery) -> list[ComparableProperty]:
        """Fetch Zillow's matched comps for the subject property."""
        zpid = await self._zpid(query)
        data = await self._get("/propertyComps", {"zpid": zpid})
        raw_comps = pick(data, "comps", "comparables", "properties", default=[])

        records = [
            {
                "address": pick(c, "address.streetAddress", "address", "streetAddress"),
                "price": pick(c, "price", "soldPrice"),
                "sqft": pick(c, "livingArea", "sqft"),
                "bedrooms": pick(c, "bedrooms", "beds"),
                "bathrooms": pick(c, "bathrooms", "baths"),
                "year_built": pick(c, "yearBuilt"),
                "sale_date": pick(c, "dateSold", "soldDate"),
                "distance_miles": pick(c, "distance"),
                "condition": pick(c, "condition"),
            }
            for c in raw_comps[:MAX_COMPS]
            if isinstance(c, dict)
        ]
        comps = validate_comparables(records, self.source_id)
        logger.info("Zillow returned %d comps (%d usable)", len(records), len(comps))
        return comps

    async def get_valuation(self, query: PropertyQuery) -> Decimal | None:
        """Get the zestimate for the subject property."""
        try:
            zpid = await self._zpid(query)
            data = await self._get("/zestimate", {"zpid": zpid})
        except Exception as e:
            logger.warning("Zestimate lookup failed: %s", e)
            return None
        value = pick(data, "zestimate", "price", "value")
        return Decimal(str(value)) if value else None

    async def get_price_history(self, query: PropertyQuery) -> list[PricePoint]:
        """Get recorded sale prices, oldest first."""
        try:
            zpid = await self._zpid(query)
            data = await self._get("/priceAndTaxHistory", {"zpid": zpid})
        except Exception as e:
            logger.warning("Zillow price history failed: %s", e)
            return []

        points: list[PricePoint] = []
        for event in pick(data, "priceHistory", default=[]):
            price = pick(event, "price", "value")
            if not price:
                continue
            try:
                when = parse_sale_date(pick(event, "date", "time"))
            except (ValueError, OverflowError, OSError):
                continue
            if when is not None:
                points.append(PricePoint(date=when, price=Decimal(str(price))))
        return sorted(points, key=lambda p: p.date)
