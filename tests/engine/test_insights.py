from dataclasses import replace
from decimal import Decimal

import pytest

from reitools.engine.flip import analyze_flip
from reitools.engine.insights import (
    best_recommendation,
    flip_insights,
    flip_suggestions,
    recommend,
    rental_insights,
    rental_suggestions,
    target_rent,
)
from reitools.engine.rental import analyze_rental
from reitools.models.results import Alert, AlertPriority, AlertType, Recommendation

CENT = Decimal("0.01")

ERROR = Alert(type=AlertType.ERROR, priority=AlertPriority.HIGH, category="roi", message="bad")
WARNING = Alert(type=AlertType.WARNING, priority=AlertPriority.MEDIUM, category="cap_rate", message="meh")


class TestRecommend:
    @pytest.mark.parametrize("score,expected", [
        ("85", Recommendation.STRONG_BUY),
        ("80", Recommendation.STRONG_BUY),
        ("65", Recommendation.BUY),
        ("45", Recommendation.PROCEED_WITH_CAUTION),
        ("10", Recommendation.PASS),
    ])
    def test_score_bands(self, score, expected):
        assert recommend(Decimal(score), [WARNING]) == expected

    def test_error_overrides_score(self):
        assert recommend(Decimal("95"), [WARNING, ERROR]) == Recommendation.DO_NOT_PROCEED

    def test_best_of_strategies(self):
        assert best_recommendation(Recommendation.PASS, Recommendation.BUY) == Recommendation.BUY
        assert best_recommendation(
            Recommendation.DO_NOT_PROCEED, Recommendation.PASS
        ) == Recommendation.DO_NOT_PROCEED


# ── Suggestions ──────────────────────────────────────────────────

class TestTargetRent:
    def test_hits_target_cash_flow(self, canonical_inputs):
        rent = target_rent(canonical_inputs, analyze_rental(canonical_inputs))
        rental = analyze_rental(replace(canonical_inputs, monthly_rent=rent))
        assert rental.monthly_cash_flow.quantize(CENT) == Decimal("200.00")

    def test_with_management(self, canonical_inputs):
        inputs = replace(canonical_inputs, management_enabled=True)
        rent = target_rent(inputs, analyze_rental(inputs))
        rental = analyze_rental(replace(inputs, monthly_rent=rent))
        assert rental.monthly_cash_flow.quantize(CENT) == Decimal("200.00")

    def test_custom_target(self, canonical_inputs):
        rent = target_rent(canonical_inputs, analyze_rental(canonical_inputs), Decimal("0"))
        rental = analyze_rental(replace(canonical_inputs, monthly_rent=rent))
        assert rental.monthly_cash_flow.quantize(CENT) == Decimal("0.00")

    def test_full_vacancy(self, canonical_inputs):
        inputs = replace(canonical_inputs, vacancy_rate=Decimal("1"))
        assert target_rent(inputs, analyze_rental(inputs)) is None


class TestFlipSuggestions:
    def test_purchase_price_target(self, canonical_inputs):
        suggestions = flip_suggestions(canonical_inputs, analyze_flip(canonical_inputs, Decimal("575000")))
        assert [s.category for s in suggestions] == ["purchase_price"]
        assert suggestions[0].target == Decimal("352500")
        assert "$352,500" in suggestions[0].message

    def test_rehab_target(self, canonical_inputs):
        inputs = replace(canonical_inputs, purchase_price=Decimal("400000"), rehab_cost=Decimal("150000"))
        suggestions = flip_suggestions(inputs, analyze_flip(inputs, Decimal("700000")))
        by_category = {s.category: s for s in suggestions}
        assert by_category["purchase_price"].target == Decimal("340000")
        assert by_category["rehab_cost"].target == Decimal("90000")

    def test_deal_within_rule(self, canonical_inputs):
        inputs = replace(canonical_inputs, purchase_price=Decimal("400000"))
        assert flip_suggestions(inputs, analyze_flip(inputs, Decimal("700000"))) == []


class TestRentalSuggestions:
    def test_negative_cash_flow_gets_rent_target(self, canonical_inputs):
        rental = analyze_rental(canonical_inputs)
        suggestions = rental_suggestions(canonical_inputs, rental)
        assert [s.category for s in suggestions] == ["monthly_rent"]
        assert suggestions[0].current == Decimal("3500")
        assert suggestions[0].target > Decimal("4100")

    def test_high_expenses(self, canonical_inputs):
        inputs = replace(canonical_inputs, hoa_monthly=Decimal("1000"))
        rental = analyze_rental(inputs)
        by_category = {s.category: s for s in rental_suggestions(inputs, rental)}
        assert by_category["operating_expenses"].target == rental.effective_gross_income * Decimal("0.45")
        assert by_category["operating_expenses"].impact == "medium"


# ── Insight strings ──────────────────────────────────────────────

class TestInsights:
    def test_losing_flip(self, canonical_inputs):
        insights = flip_insights(analyze_flip(canonical_inputs, Decimal("575000")))
        assert len(insights) == 3
        assert "below the 15% minimum" in insights[0]
        assert "faster timeline" in insights[1]
        assert insights[2].startswith("Light rehab")

    def test_strong_flip(self, canonical_inputs):
        insights = flip_insights(analyze_flip(canonical_inputs, Decimal("700000")))
        assert insights[0].startswith("Exceptional")
        assert "excellent velocity" in insights[1]

    def test_negative_rental(self, canonical_inputs):
        insights = rental_insights(analyze_rental(canonical_inputs))
        assert insights[0] == "Losing $409/month"
        assert "below the 8% minimum" in insights[1]
        assert "may be overpriced" in insights[2]
        assert "may not qualify" in insights[3]
        assert "efficient" in insights[4]

    def test_cash_purchase(self, canonical_inputs):
        inputs = replace(canonical_inputs, down_payment_pct=Decimal("1"))
        insights = rental_insights(analyze_rental(inputs))
        assert "No debt service; purchased without financing" in insights
