"""Redfin comps via the redfin-base-us RapidAPI gateway.

Responses are Redfin stingray payloads passed through, so they may carry
the `{}&&` prefix that `load_json` strips.
"""

import logging

from reitools.data.sources.rapidapi import RapidAPIClient, pick
from reitools.models.property import ComparableProperty, PropertyQuery, validate_comparables
from reitools.models.usage import QuotaWindow

logger = logging.getLogger(__name__)


class RedfinSource(RapidAPIClient):
    host = "redfin-base-us.p.rapidapi.com"
    source_id = "redfin"
    window = QuotaWindow.MONTH

    async def fetch(self, query: PropertyQuery) -> list[ComparableProperty]:
        """Fetch recently sold comparables near the subject."""
        data = await self._get(
            "/redfin/comps",
            {
                "address": query.address,
                "city": query.city,
                "state": query.state,
                "zip": query.zip_code,
            },
        )
        raw_comps = pick(data, "payload.comps", "comps", "comparables", "data", default=[])

        records = [
            {
                "address": pick(c, "streetLine.value", "address", "streetAddress"),
                "price": pick(c, "price.value", "price", "soldPrice"),
                "sqft": pick(c, "sqFt.value", "sqft", "livingArea"),
                "bedrooms": pick(c, "beds", "bedrooms"),
                "bathrooms": pick(c, "baths", "bathrooms"),
                "year_built": pick(c, "yearBuilt.value", "yearBuilt"),
                "sale_date": pick(c, "soldDate", "saleDate"),
                "distance_miles": pick(c, "distance"),
                "condition": pick(c, "condition"),
            }
            for c in raw_comps
            if isinstance(c, dict)
        ]
        comps = validate_comparables(records, self.source_id)
        logger.info("Redfin returned %d comps (%d usable)", len(records), len(comps))
        return comps
