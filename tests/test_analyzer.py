"""End-to-end tests for the deal analyzer with fake data sources."""

import threading
from dataclasses import replace
from datetime import date
from decimal import Decimal

import httpx
import pytest

import reitools.analyzer as analyzer_module
from reitools.analyzer import DealAnalyzer
from reitools.config import settings
from reitools.data.errors import DataSourceError
from reitools.data.sources.zillow import ZillowSource
from reitools.data.store import MemoryStore
from reitools.data.waterfall import DataWaterfall
from reitools.engine.montecarlo import run_monte_carlo
from reitools.engine.rental import break_even, hold_metrics
from reitools.models.property import PricePoint
from reitools.models.results import AlertType, Recommendation
from reitools.models.usage import QuotaWindow

CENT = Decimal("0.01")
LIMITS = {"private_zillow": (10, "month"), "ai_estimate": (10, "day")}


class FakeComps:
    def __init__(self, source_id, comps=None, error=None, window=QuotaWindow.MONTH):
        self.source_id = source_id
        self.window = window
        self.comps = comps or []
        self.error = error

    async def fetch(self, query):
        if self.error is not None:
            raise self.error
        return list(self.comps)


class FakeValuation:
    def __init__(self, source_id, value=None, error=None):
        self.source_id = source_id
        self.window = QuotaWindow.MONTH
        self.value = value
        self.error = error
        self.calls = 0

    async def get_valuation(self, query):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value


class FakeZillow(FakeValuation):
    """Supplies both comparables and a valuation."""

    async def fetch(self, query):
        return []


class FakeHistory:
    source_id = "private_zillow"
    window = QuotaWindow.MONTH

    def __init__(self, points):
        self.points = points

    async def get_price_history(self, query):
        return list(self.points)


def zillow_response(path: str) -> httpx.Response:
    if path == "/property":
        return httpx.Response(200, json={"zpid": 12345})
    if path == "/propertyComps":
        return httpx.Response(200, json={"comps": [{
            "address": {"streetAddress": "101 Oak Ave"},
            "price": 580000,
            "livingArea": 1800,
            "bedrooms": 3,
            "bathrooms": 2,
            "dateSold": "2025-03-01",
            "condition": "Renovated",
        }]})
    if path == "/zestimate":
        return httpx.Response(200, json={"zestimate": 570000})
    if path == "/priceAndTaxHistory":
        return httpx.Response(200, json={"priceHistory": [
            {"date": "2015-06-01", "price": 400000},
            {"date": "2020-06-01", "price": 500000},
        ]})
    return httpx.Response(404)


@pytest.fixture
def store():
    return MemoryStore(limits=LIMITS, threshold=0.9, ttl_hours=24)


@pytest.fixture
def failing_fallback():
    return FakeComps("ai_estimate", error=DataSourceError("ai_estimate", "unavailable"), window=QuotaWindow.DAY)


def analyzer_for(store, sources, fallback, **kwargs) -> DealAnalyzer:
    waterfall = DataWaterfall(store, sources=sources, fallback=fallback, timeout=1.0)
    kwargs.setdefault("valuation_sources", [])
    return DealAnalyzer(waterfall, **kwargs)


# ── Full analysis ────────────────────────────────────────────────

class TestAnalyze:
    async def test_comps_and_external_estimate(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        analyzer = analyzer_for(store, [FakeComps("private_zillow", remodeled_comps)], failing_fallback)
        result = await analyzer.analyze(
            sample_query,
            canonical_inputs,
            external_estimates={"zestimate": Decimal("570000")},
            price_history=[],
            as_of=as_of,
        )
        assert result.arv.arv.quantize(CENT) == Decimal("576666.67")
        assert result.data_source == "private_zillow"
        assert result.comp_count == 3
        assert result.flip.arv == result.arv.arv
        assert result.brrrr is None
        assert result.monte_carlo is None

    async def test_losing_deal_not_recommended(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        analyzer = analyzer_for(store, [FakeComps("private_zillow", remodeled_comps)], failing_fallback)
        result = await analyzer.analyze(
            sample_query, canonical_inputs, external_estimates={}, price_history=[], as_of=as_of
        )
        assert result.flip.net_profit < 0
        assert result.flip_score.recommendation == Recommendation.DO_NOT_PROCEED
        assert result.rental_score.recommendation == Recommendation.DO_NOT_PROCEED
        assert result.recommendation == Recommendation.DO_NOT_PROCEED
        assert result.alerts.overall_status == "CRITICAL"
        assert any(s.category == "purchase_price" for s in result.suggestions)
        assert result.insights

    async def test_all_sources_fail_uses_fallback(
        self, store, failing_fallback, sample_query, canonical_inputs
    ):
        broken = FakeComps("private_zillow", error=DataSourceError("private_zillow", "HTTP 503"))
        analyzer = analyzer_for(store, [broken], failing_fallback)
        result = await analyzer.analyze(
            sample_query, canonical_inputs, external_estimates={}, price_history=[]
        )
        assert result.arv.arv == Decimal("575000")
        assert result.arv.low_confidence is True
        assert result.data_source is None
        assert result.comp_count == 0
        assert result.arv.warnings[0] in result.insights

    async def test_brrrr_when_refinancing(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        inputs = replace(canonical_inputs, refinance_ltv=Decimal("0.75"))
        analyzer = analyzer_for(store, [FakeComps("private_zillow", remodeled_comps)], failing_fallback)
        result = await analyzer.analyze(
            sample_query, inputs, external_estimates={}, price_history=[], as_of=as_of
        )
        assert result.brrrr is not None
        assert result.brrrr.refinance_loan == result.arv.arv * Decimal("0.75")

    async def test_monte_carlo(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        analyzer = analyzer_for(store, [FakeComps("private_zillow", remodeled_comps)], failing_fallback)
        result = await analyzer.analyze(
            sample_query,
            canonical_inputs,
            external_estimates={},
            price_history=[],
            monte_carlo_trials=50,
            seed=7,
            as_of=as_of,
        )
        assert result.monte_carlo.iterations == 50
        assert result.monte_carlo.seed == 7

    async def test_inputs_are_clamped(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        inputs = replace(canonical_inputs, vacancy_rate=Decimal("-0.5"))
        analyzer = analyzer_for(store, [FakeComps("private_zillow", remodeled_comps)], failing_fallback)
        result = await analyzer.analyze(
            sample_query, inputs, external_estimates={}, price_history=[], as_of=as_of
        )
        assert result.rental.vacancy_loss == 0


# ── External valuations and history ──────────────────────────────

class TestExternalData:
    async def test_valuations_collected(self, store, failing_fallback, sample_query):
        good = FakeValuation("private_zillow", Decimal("570000"))
        broken = FakeValuation("us_real_estate", error=DataSourceError("us_real_estate", "timeout"))
        analyzer = analyzer_for(store, [], failing_fallback, valuation_sources=[good, broken])

        estimates = await analyzer.external_valuations(sample_query)
        assert estimates == {"private_zillow": Decimal("570000"), "us_real_estate": None}
        assert store.get_usage("private_zillow", QuotaWindow.MONTH) == 1

    async def test_exhausted_quota_skips_valuation(self, store, failing_fallback, sample_query):
        store.increment_usage("private_zillow", QuotaWindow.MONTH, 9)
        source = FakeValuation("private_zillow", Decimal("570000"))
        analyzer = analyzer_for(store, [], failing_fallback, valuation_sources=[source])

        estimates = await analyzer.external_valuations(sample_query)
        assert estimates == {"private_zillow": None}
        assert source.calls == 0

    async def test_valuation_sources_discovered_from_waterfall(self, store, failing_fallback):
        source = FakeZillow("private_zillow", Decimal("570000"))
        waterfall = DataWaterfall(store, sources=[source], fallback=failing_fallback, timeout=1.0)
        analyzer = DealAnalyzer(waterfall)
        assert analyzer.valuation_sources == [source]
        assert analyzer.history_source is None

    async def test_price_history(self, store, failing_fallback, sample_query):
        points = [
            PricePoint(date=date(2015, 6, 1), price=Decimal("400000")),
            PricePoint(date=date(2020, 6, 1), price=Decimal("500000")),
        ]
        analyzer = analyzer_for(store, [], failing_fallback, history_source=FakeHistory(points))
        assert await analyzer.price_history(sample_query) == points
        assert store.get_usage("private_zillow", QuotaWindow.MONTH) == 1

    async def test_no_history_source(self, store, failing_fallback, sample_query):
        analyzer = analyzer_for(store, [], failing_fallback)
        assert await analyzer.price_history(sample_query) == []

    async def test_one_zpid_lookup_per_analysis(
        self, store, failing_fallback, sample_query, canonical_inputs, as_of
    ):
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return zillow_response(request.url.path)

        zillow = ZillowSource(api_key="test-key", transport=httpx.MockTransport(handler))
        waterfall = DataWaterfall(store, sources=[zillow], fallback=failing_fallback, timeout=1.0)
        result = await DealAnalyzer(waterfall).analyze(sample_query, canonical_inputs, as_of=as_of)

        assert result.data_source == "private_zillow"
        assert paths.count("/property") == 1
        assert len(paths) == 4
        # Every request sent is charged to the monthly plan
        assert store.get_usage("private_zillow", QuotaWindow.MONTH) == 4


# ── Hold, financing and tax detail ───────────────────────────────

class TestDealDetail:
    async def analyze(self, store, failing_fallback, comps, query, inputs, as_of, **kwargs):
        analyzer = analyzer_for(store, [FakeComps("private_zillow", comps)], failing_fallback, **kwargs)
        return await analyzer.analyze(query, inputs, external_estimates={}, price_history=[], as_of=as_of)

    async def test_hold_metrics(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        result = await self.analyze(
            store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
        )
        hold = result.hold
        assert hold == hold_metrics(canonical_inputs, 10, Decimal("0.1"))
        assert hold.years == 10
        assert hold.irr is not None
        assert hold.final_value > canonical_inputs.purchase_price + canonical_inputs.rehab_cost
        assert hold.sale_tax.depreciation_recapture == Decimal("160000")
        assert hold.sale_tax.total_tax > 0

    async def test_break_even(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        result = await self.analyze(
            store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
        )
        assert result.break_even == break_even(canonical_inputs)
        # The rental loses money, so break-even rent sits above the asking rent
        assert result.break_even.rent_without_management > canonical_inputs.monthly_rent

    async def test_loan_comparison(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        result = await self.analyze(
            store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
        )
        loans = result.loan_comparison
        assert [s.name for s in loans] == [
            "30-Year Fixed", "15-Year Fixed", "Interest-Only (10yr)", "5/1 ARM"
        ]
        assert loans[0].monthly_payment.quantize(CENT) == Decimal("2661.21")
        assert loans[0].monthly_cash_flow == result.rental.noi / 12 - loans[0].monthly_payment

    async def test_cash_purchase_has_no_loans(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        inputs = replace(canonical_inputs, down_payment_pct=Decimal("1"))
        result = await self.analyze(store, failing_fallback, remodeled_comps, sample_query, inputs, as_of)
        assert result.loan_comparison == []

    async def test_tax_inputs_flow_through(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        inputs = replace(canonical_inputs, land_value_pct=Decimal("0.5"), tax_bracket=Decimal("0.32"))
        result = await self.analyze(store, failing_fallback, remodeled_comps, sample_query, inputs, as_of)
        tax = result.tax_benefits
        # $550K basis, half of it land, over 27.5 years
        assert tax.annual_depreciation == Decimal("10000")
        assert tax.taxable_income < 0
        assert tax.tax_savings == -tax.taxable_income * Decimal("0.32")

    async def test_comp_quality_and_statistics(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        result = await self.analyze(
            store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
        )
        assert result.comp_quality.real_count == 3
        assert result.comp_quality.estimated_count == 0
        assert result.comp_statistics.count == 3
        assert result.comp_statistics.mean_price == Decimal("580000")
        assert result.comp_statistics.median_price == Decimal("580000")

    async def test_no_comps_no_comp_detail(self, store, failing_fallback, sample_query, canonical_inputs):
        broken = FakeComps("private_zillow", error=DataSourceError("private_zillow", "HTTP 503"))
        analyzer = analyzer_for(store, [broken], failing_fallback)
        result = await analyzer.analyze(
            sample_query, canonical_inputs, external_estimates={}, price_history=[]
        )
        assert result.comp_quality is None
        assert result.comp_statistics is None
        assert result.hold is not None

    async def test_market_alert_with_average(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        result = await self.analyze(
            store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of,
            market_average_coc=Decimal("0.08"),
        )
        market = [a for a in result.alerts.alerts if a.category == "market"]
        assert len(market) == 1
        assert market[0].type == AlertType.INFO
        assert "below" in market[0].message

    async def test_no_market_alert_without_average(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
    ):
        result = await self.analyze(
            store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of
        )
        assert all(a.category != "market" for a in result.alerts.alerts)


# ── Execution and fallbacks ──────────────────────────────────────

class TestExecution:
    async def test_monte_carlo_runs_on_calling_thread(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of, monkeypatch
    ):
        threads: list[int] = []

        def recording(*args, **kwargs):
            threads.append(threading.get_ident())
            return run_monte_carlo(*args, **kwargs)

        monkeypatch.setattr(analyzer_module, "run_monte_carlo", recording)
        analyzer = analyzer_for(store, [FakeComps("private_zillow", remodeled_comps)], failing_fallback)
        result = await analyzer.analyze(
            sample_query,
            canonical_inputs,
            external_estimates={},
            price_history=[],
            monte_carlo_trials=10,
            seed=1,
            as_of=as_of,
        )
        assert threads == [threading.get_ident()]
        assert result.monte_carlo.iterations == 10

    async def test_zero_blend_weights_fall_back(
        self, store, failing_fallback, remodeled_comps, sample_query, canonical_inputs, as_of, monkeypatch
    ):
        monkeypatch.setattr(settings, "comps_weight", 0.0)
        monkeypatch.setattr(settings, "external_weight", 0.0)
        analyzer = analyzer_for(store, [FakeComps("private_zillow", remodeled_comps)], failing_fallback)
        result = await analyzer.analyze(
            sample_query,
            canonical_inputs,
            external_estimates={"zestimate": Decimal("570000")},
            price_history=[],
            as_of=as_of,
        )
        assert result.arv.arv == Decimal("575000")
        assert result.arv.low_confidence is True
