"""Tests for the provider adapters, using httpx mock transports."""

import json
from dataclasses import replace
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from reitools.data.errors import DataSourceError
from reitools.data.sources.ai_estimate import AIEstimateSource
from reitools.data.sources.rapidapi import load_json, parse_rate_limit_headers, pick
from reitools.data.sources.redfin import RedfinSource
from reitools.data.sources.us_real_estate import USRealEstateSource
from reitools.data.sources.zillow import ZillowSource
from reitools.models.property import Condition

RATE_HEADERS = {
    "x-ratelimit-requests-limit": "250",
    "x-ratelimit-requests-remaining": "200",
}


def zillow_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/property":
        return httpx.Response(200, json={"zpid": 12345}, headers=RATE_HEADERS)
    if path == "/propertyComps":
        return httpx.Response(200, json={"comps": [
            {
                "address": {"streetAddress": "101 Oak Ave"},
                "price": 580000,
                "livingArea": 1800,
                "bedrooms": 3,
                "bathrooms": 2,
                "dateSold": "2025-03-01",
                "distance": 0.4,
                "condition": "Renovated",
            },
            {"address": {"streetAddress": "103 Oak Ave"}, "price": None},
        ]}, headers=RATE_HEADERS)
    if path == "/zestimate":
        return httpx.Response(200, json={"zestimate": 570000})
    if path == "/priceAndTaxHistory":
        return httpx.Response(200, json={"priceHistory": [
            {"date": "2020-06-01", "price": 500000},
            {"date": "2015-06-01", "price": 400000},
            {"date": "2018-01-01", "price": None},
        ]})
    return httpx.Response(404)


# ── Shared helpers ───────────────────────────────────────────────

class TestHelpers:
    def test_rate_limit_headers(self):
        usage = parse_rate_limit_headers(httpx.Headers(RATE_HEADERS))
        assert usage.limit == 250
        assert usage.remaining == 200
        assert usage.used == 50
        assert usage.percent_used == 20.0

    def test_rapidapi_header_names(self):
        headers = httpx.Headers({
            "x-rapidapi-requests-limit": "100",
            "x-rapidapi-requests-remaining": "100",
        })
        assert parse_rate_limit_headers(headers).used == 0

    def test_missing_headers(self):
        assert parse_rate_limit_headers(httpx.Headers({})) is None

    def test_malformed_headers(self):
        headers = httpx.Headers({
            "x-ratelimit-requests-limit": "lots",
            "x-ratelimit-requests-remaining": "10",
        })
        assert parse_rate_limit_headers(headers) is None

    def test_pick_nested_paths(self):
        record = {"description": {"sqft": 1600}, "sqft": None}
        assert pick(record, "sqft", "description.sqft") == 1600
        assert pick(record, "livingArea", default=0) == 0

    def test_load_json_strips_prefix(self):
        assert load_json('{}&&{"payload": {"comps": []}}') == {"payload": {"comps": []}}


# ── Zillow ───────────────────────────────────────────────────────

class TestZillow:
    @pytest.fixture
    def source(self):
        return ZillowSource(api_key="test-key", transport=httpx.MockTransport(zillow_handler))

    async def test_fetch_comps(self, source, sample_query):
        comps = await source.fetch(sample_query)

        assert len(comps) == 1
        comp = comps[0]
        assert comp.address == "101 Oak Ave"
        assert comp.price == Decimal("580000")
        assert comp.sqft == 1800
        assert comp.sale_date == date(2025, 3, 1)
        assert comp.condition == Condition.REMODELED
        assert comp.source == "private_zillow"
        assert comp.is_empirical is True

    async def test_records_plan_usage(self, source, sample_query):
        await source.fetch(sample_query)
        assert source.last_usage.used == 50

    async def test_valuation(self, source, sample_query):
        assert await source.get_valuation(sample_query) == Decimal("570000")

    async def test_price_history_sorted(self, source, sample_query):
        history = await source.get_price_history(sample_query)
        assert [p.date for p in history] == [date(2015, 6, 1), date(2020, 6, 1)]
        assert history[-1].price == Decimal("500000")

    async def test_missing_zpid(self, sample_query):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        source = ZillowSource(api_key="test-key", transport=transport)
        with pytest.raises(DataSourceError):
            await source.fetch(sample_query)

    async def test_http_error_raises(self, sample_query):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        source = ZillowSource(api_key="test-key", transport=transport)
        with pytest.raises(httpx.HTTPStatusError):
            await source.fetch(sample_query)

    async def test_valuation_failure_is_none(self, sample_query):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        source = ZillowSource(api_key="test-key", transport=transport)
        assert await source.get_valuation(sample_query) is None

    async def test_zpid_resolved_once_per_address(self, sample_query):
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return zillow_handler(request)

        source = ZillowSource(api_key="test-key", transport=httpx.MockTransport(handler))
        await source.fetch(sample_query)
        await source.get_valuation(sample_query)
        await source.get_price_history(sample_query)

        assert paths.count("/property") == 1
        assert len(paths) == 4

    async def test_new_address_resolves_again(self, sample_query):
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return zillow_handler(request)

        source = ZillowSource(api_key="test-key", transport=httpx.MockTransport(handler))
        await source.get_valuation(sample_query)
        await source.get_valuation(replace(sample_query, address="200 Elm St"))
        assert paths.count("/property") == 2


# ── US Real Estate and Redfin ────────────────────────────────────

class TestUSRealEstate:
    async def test_fetch_nested_results(self, sample_query):
        payload = {"data": {"home_search": {"results": [
            {
                "location": {"address": {"line": "9 Pine Rd"}},
                "last_sold_price": 455000,
                "description": {"sqft": 1500, "beds": 3, "baths": 2, "sold_date": "2025-01-10"},
            },
        ]}}}
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        source = USRealEstateSource(api_key="test-key", transport=transport)
        comps = await source.fetch(sample_query)

        assert len(comps) == 1
        assert comps[0].address == "9 Pine Rd"
        assert comps[0].price == Decimal("455000")
        assert comps[0].bedrooms == 3
        assert comps[0].sale_date == date(2025, 1, 10)

    async def test_valuation(self, sample_query):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"data": {"estimate": 590000}})
        )
        source = USRealEstateSource(api_key="test-key", transport=transport)
        assert await source.get_valuation(sample_query) == Decimal("590000")


class TestRedfin:
    async def test_fetch_prefixed_payload(self, sample_query):
        body = "{}&&" + json.dumps({"payload": {"comps": [
            {
                "streetLine": {"value": "12 Birch Ln"},
                "price": {"value": 610000},
                "sqFt": {"value": 1900},
                "beds": 4,
                "baths": 2.5,
                "soldDate": "2025-02-14",
                "condition": "remodeled",
            },
        ]}})
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=body))
        source = RedfinSource(api_key="test-key", transport=transport)
        comps = await source.fetch(sample_query)

        assert len(comps) == 1
        assert comps[0].address == "12 Birch Ln"
        assert comps[0].price == Decimal("610000")
        assert comps[0].bathrooms == Decimal("2.5")
        assert comps[0].condition == Condition.REMODELED


# ── AI estimate ──────────────────────────────────────────────────

def mock_client(text: str) -> AsyncMock:
    message = MagicMock()
    message.content = [MagicMock(text=text)]
    client = AsyncMock()
    client.messages.create = AsyncMock(return_value=message)
    return client


class TestAIEstimate:
    async def test_comps_are_non_empirical(self, sample_query):
        response = "```json\n" + json.dumps([
            {"address": "1 A St", "price": 520000, "sqft": 1700, "beds": 3, "baths": 2,
             "sale_date": "2025-04-01", "distance": 0.5, "condition": "unremodeled"},
            {"address": "2 B St", "price": 640000, "sqft": 1750, "beds": 3, "baths": 2,
             "sale_date": "2025-04-15", "distance": 0.7, "condition": "remodeled"},
        ]) + "\n```"
        source = AIEstimateSource(client=mock_client(response))
        comps = await source.fetch(sample_query)

        assert len(comps) == 2
        assert all(c.is_empirical is False for c in comps)
        assert all(c.source == "ai_estimate" for c in comps)
        assert comps[1].condition == Condition.REMODELED

    async def test_unparseable_response(self, sample_query):
        source = AIEstimateSource(client=mock_client("I cannot help with that."))
        with pytest.raises(DataSourceError):
            await source.fetch(sample_query)

    async def test_non_array_response(self, sample_query):
        source = AIEstimateSource(client=mock_client('{"price": 500000}'))
        with pytest.raises(DataSourceError):
            await source.fetch(sample_query)

    async def test_missing_api_key(self, sample_query):
        source = AIEstimateSource(api_key="")
        with pytest.raises(DataSourceError):
            await source.fetch(sample_query)
