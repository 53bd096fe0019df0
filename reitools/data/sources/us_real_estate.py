"""US Real Estate API (RapidAPI): similar homes and home value estimates."""

import logging
from decimal import Decimal

from reitools.data.sources.rapidapi import RapidAPIClient, pick
from reitools.models.property import ComparableProperty, PropertyQuery, validate_comparables
from reitools.models.usage import QuotaWindow

logger = logging.getLogger(__name__)

SIMILAR_HOMES = "/for-sale/similiar-homes"  # sic, provider's spelling
HOME_ESTIMATE = "/for-sale/home-estimate-value"


class USRealEstateSource(RapidAPIClient):
    host = "us-real-estate.p.rapidapi.com"
    source_id = "us_real_estate"
    window = QuotaWindow.MONTH

    def _params(self, query: PropertyQuery) -> dict:
        return {
            "address": query.address,
            "city": query.city,
            "state_code": query.state,
            "zip_code": query.zip_code,
        }

    async def fetch(self, query: PropertyQuery) -> list[ComparableProperty]:
        """Fetch AI-matched similar homes around the subject."""
        data = await self._get(SIMILAR_HOMES, self._params(query))
        homes = pick(data, "data.home_search.results", "data.homes", "homes", "properties", default=[])

        records = [
            {
                "address": pick(h, "location.address.line", "address"),
                "price": pick(h, "price", "list_price", "last_sold_price"),
                "sqft": pick(h, "description.sqft", "sqft"),
                "bedrooms": pick(h, "description.beds", "beds"),
                "bathrooms": pick(h, "description.baths", "baths"),
                "year_built": pick(h, "description.year_built", "year_built"),
                "sale_date": pick(h, "description.sold_date", "sold_date", "list_date"),
                "distance_miles": pick(h, "distance"),
                "condition": pick(h, "condition"),
            }
            for h in homes
            if isinstance(h, dict)
        ]
        comps = validate_comparables(records, self.source_id)
        logger.info("US Real Estate returned %d homes (%d usable)", len(records), len(comps))
        return comps

    async def get_valuation(self, query: PropertyQuery) -> Decimal | None:
        """Get the provider's home value estimate."""
        try:
            data = await self._get(HOME_ESTIMATE, self._params(query))
        except Exception as e:
            logger.warning("US Real Estate estimate failed: %s", e)
            return None
        value = pick(data, "data.estimate", "estimate", "estimatedValue")
        return Decimal(str(value)) if value else None
