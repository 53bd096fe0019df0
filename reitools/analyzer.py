"""Deal analyzer: orchestrates data acquisition, valuation and the analysis engine.

Flow: comps waterfall → external valuations → ARV → flip + rental (+ BRRRR)
→ scores, alerts, recommendation, insights → hold, loan and tax detail
→ optional Monte-Carlo
"""

import asyncio
import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal

from reitools.config import settings
from reitools.data.base import PriceHistorySource, ValuationSource, requests_since
from reitools.data.errors import AllSourcesFailed
from reitools.data.waterfall import DataWaterfall
from reitools.engine.alerts import build_report, flip_alerts, market_alerts, rental_alerts
from reitools.engine.comps import comp_quality, comp_statistics
from reitools.engine.debt import compare_loans
from reitools.engine.flip import analyze_flip
from reitools.engine.insights import (
    best_recommendation,
    flip_insights,
    flip_suggestions,
    recommend,
    rental_insights,
    rental_suggestions,
)
from reitools.engine.montecarlo import run_monte_carlo
from reitools.engine.rental import analyze_brrrr, analyze_rental, break_even, hold_metrics
from reitools.engine.scoring import score_flip, score_rental
from reitools.engine.tax import tax_benefits
from reitools.engine.valuation import aggregate_arv, fallback_arv
from reitools.models.assumptions import AnalysisInputs
from reitools.models.property import ComparableProperty, PricePoint, PropertyQuery
from reitools.models.results import DealAnalysis
from reitools.models.usage import QuotaWindow
from reitools.models.valuation import ARVResult

logger = logging.getLogger(__name__)


class DealAnalyzer:
    def __init__(
        self,
        waterfall: DataWaterfall,
        valuation_sources: list[ValuationSource] | None = None,
        history_source: PriceHistorySource | None = None,
        market_average_coc: Decimal | None = None,
    ):
        self.waterfall = waterfall
        self.store = waterfall.store
        if valuation_sources is None:
            valuation_sources = [s for s in waterfall.sources if isinstance(s, ValuationSource)]
        self.valuation_sources = valuation_sources
        if history_source is None:
            history_source = next(
                (s for s in waterfall.sources if isinstance(s, PriceHistorySource)), None
            )
        self.history_source = history_source
        self.market_average_coc = market_average_coc

    async def analyze(
        self,
        query: PropertyQuery,
        inputs: AnalysisInputs,
        force_refresh: bool = False,
        external_estimates: dict[str, Decimal | None] | None = None,
        price_history: list[PricePoint] | None = None,
        monte_carlo_trials: int | None = None,
        seed: int | None = None,
        as_of: date | None = None,
    ) -> DealAnalysis:
        """Run a complete analysis for one property.

        When every comp source fails and no external estimate is available,
        ARV falls back to 115% of the purchase price with a low-confidence flag.
        """
        inputs = inputs.clamped()

        # Step 1: Comparable sales
        comps: list[ComparableProperty] = []
        data_source: str | None = None
        try:
            acquisition = await self.waterfall.acquire(query, force_refresh)
            comps = acquisition.comps
            data_source = acquisition.source
        except AllSourcesFailed as e:
            logger.warning("No comparable data for %s: %s", query.full, e)

        # Step 2: External valuations and price history
        if external_estimates is None:
            external_estimates = await self.external_valuations(query)
        if price_history is None:
            price_history = await self.price_history(query)

        # Step 3: ARV
        arv = self.estimate_arv(comps, external_estimates, price_history, inputs, as_of)

        # Step 4: Strategy economics
        flip = analyze_flip(inputs, arv.arv)
        rental = analyze_rental(inputs)
        brrrr = analyze_brrrr(inputs, arv.arv) if inputs.refinance_ltv is not None else None

        # Step 5: Scores, alerts, recommendation
        f_alerts = flip_alerts(flip)
        r_alerts = rental_alerts(rental, inputs.vacancy_rate)
        m_alerts = market_alerts(rental, self.market_average_coc)
        flip_score = score_flip(flip)
        rental_score = score_rental(rental, self.market_average_coc)
        flip_score = replace(flip_score, recommendation=recommend(flip_score.total, f_alerts))
        rental_score = replace(rental_score, recommendation=recommend(rental_score.total, r_alerts))

        insights = list(arv.warnings) + flip_insights(flip) + rental_insights(rental)

        # Step 6: Hold, financing and tax detail
        hold = hold_metrics(inputs, settings.hold_years, Decimal(str(settings.discount_rate)))
        loans = (
            compare_loans(inputs.loan_amount, inputs.interest_rate, rental.noi / 12)
            if inputs.loan_amount > 0
            else []
        )

        # Step 7: Optional risk simulation, run inline on the event loop
        monte_carlo = None
        if monte_carlo_trials:
            monte_carlo = run_monte_carlo(inputs, arv.arv, monte_carlo_trials, seed)

        return DealAnalysis(
            arv=arv,
            flip=flip,
            rental=rental,
            flip_score=flip_score,
            rental_score=rental_score,
            alerts=build_report(f_alerts + r_alerts + m_alerts),
            recommendation=best_recommendation(
                flip_score.recommendation, rental_score.recommendation
            ),
            insights=insights,
            suggestions=flip_suggestions(inputs, flip) + rental_suggestions(inputs, rental),
            comp_count=len(comps),
            data_source=data_source,
            brrrr=brrrr,
            monte_carlo=monte_carlo,
            hold=hold,
            break_even=break_even(inputs),
            loan_comparison=loans,
            tax_benefits=tax_benefits(inputs, rental),
            comp_quality=comp_quality(comps, as_of) if comps else None,
            comp_statistics=comp_statistics(comps),
        )

    def estimate_arv(
        self,
        comps: list[ComparableProperty],
        external_estimates: dict[str, Decimal | None],
        price_history: list[PricePoint],
        inputs: AnalysisInputs,
        as_of: date | None = None,
    ) -> ARVResult:
        try:
            return aggregate_arv(
                comps,
                external_estimates,
                sqft=inputs.sqft,
                bedrooms=inputs.bedrooms,
                bathrooms=inputs.bathrooms,
                price_history=price_history,
                as_of=as_of,
            )
        except ValueError as e:
            logger.warning("ARV aggregation unavailable (%s), using purchase price fallback", e)
            return fallback_arv(inputs.purchase_price)

    async def external_valuations(self, query: PropertyQuery) -> dict[str, Decimal | None]:
        """Automated estimates from each valuation source with quota to spare.

        A failing or over-quota source maps to None and is excluded from blending.
        """
        estimates: dict[str, Decimal | None] = {}
        for source in self.valuation_sources:
            window = getattr(source, "window", QuotaWindow.MONTH)
            if not self._quota_available(source.source_id, window):
                logger.info("%s quota exhausted, skipping valuation", source.source_id)
                estimates[source.source_id] = None
                continue
            before = getattr(source, "requests", 0)
            try:
                value = await asyncio.wait_for(
                    source.get_valuation(query), self.waterfall.timeout
                )
            except Exception as e:
                logger.warning("%s valuation failed: %s", source.source_id, e)
                value = None
            if value is not None:
                self._count_call(source.source_id, window, requests_since(source, before))
            estimates[source.source_id] = value
        return estimates

    async def price_history(self, query: PropertyQuery) -> list[PricePoint]:
        source = self.history_source
        if source is None:
            return []
        source_id = getattr(source, "source_id", "price_history")
        window = getattr(source, "window", QuotaWindow.MONTH)
        if not self._quota_available(source_id, window):
            return []
        before = getattr(source, "requests", 0)
        try:
            history = await asyncio.wait_for(
                source.get_price_history(query), self.waterfall.timeout
            )
        except Exception as e:
            logger.warning("Price history lookup failed: %s", e)
            return []
        if history:
            self._count_call(source_id, window, requests_since(source, before))
        return history

    def _quota_available(self, source: str, window: QuotaWindow) -> bool:
        try:
            return self.store.is_quota_available(source, window)
        except Exception as e:
            logger.warning("Quota store unavailable (%s), allowing %s", e, source)
            return True

    def _count_call(self, source: str, window: QuotaWindow, n: int = 1) -> None:
        try:
            self.store.increment_usage(source, window, n)
        except Exception as e:
            logger.warning("Could not record usage for %s: %s", source, e)
