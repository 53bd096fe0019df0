from datetime import date
from decimal import Decimal

from reitools.engine.comps import (
    arv_from_comps,
    comp_quality,
    comp_quality_score,
    comp_statistics,
    filter_by_date,
    is_similar,
    months_between,
    quality_label,
    renovation_premium,
    select_comps,
    sqft_adjustment,
)
from reitools.models.property import ComparableProperty, Condition


def comp(price, condition=Condition.UNKNOWN, sale_date=date(2025, 4, 1), **kwargs):
    return ComparableProperty(
        address=kwargs.pop("address", "1 Test St"),
        price=Decimal(price),
        source=kwargs.pop("source", "redfin"),
        condition=condition,
        sale_date=sale_date,
        **kwargs,
    )


class TestDateFilter:
    def test_months_between(self):
        assert months_between(date(2023, 6, 15), date(2025, 6, 1)) == 24

    def test_drops_old_and_undated(self, as_of):
        comps = [
            comp("1", sale_date=date(2023, 5, 1)),
            comp("2", sale_date=date(2023, 6, 1)),
            comp("3", sale_date=None),
            comp("4", sale_date=date(2025, 5, 20)),
        ]
        kept = filter_by_date(comps, as_of)
        assert [c.price for c in kept] == [Decimal("2"), Decimal("4")]

    def test_future_sales_dropped(self, as_of):
        assert filter_by_date([comp("1", sale_date=date(2025, 8, 1))], as_of) == []


class TestSimilarity:
    def test_sqft_band_inclusive(self):
        assert is_similar(comp("1", sqft=1800), sqft=1500)
        assert not is_similar(comp("1", sqft=1900), sqft=1500)

    def test_bed_and_bath_bands(self):
        c = comp("1", bedrooms=4, bathrooms=Decimal("3"))
        assert is_similar(c, bedrooms=3, bathrooms=Decimal("2"))
        assert not is_similar(c, bedrooms=2)
        assert not is_similar(c, bathrooms=Decimal("1.5"))

    def test_unknown_subject_does_not_constrain(self):
        assert is_similar(comp("1", sqft=5000, bedrooms=7))

    def test_select_keeps_wider_set_when_too_few(self, as_of):
        comps = [comp("1", sqft=1800), comp("2", sqft=1800), comp("3", sqft=1500)]
        assert len(select_comps(comps, sqft=1400, as_of=as_of)) == 3

    def test_select_narrows_when_enough(self, as_of):
        comps = [comp(str(i), sqft=1500) for i in range(1, 4)] + [comp("9", sqft=3000)]
        selected = select_comps(comps, sqft=1500, as_of=as_of)
        assert [c.price for c in selected] == [Decimal("1"), Decimal("2"), Decimal("3")]


class TestArvFromComps:
    def test_remodeled_average(self, remodeled_comps, as_of):
        estimate = arv_from_comps(remodeled_comps, as_of=as_of)
        assert estimate.value == Decimal("580000")
        assert estimate.method == "remodeled_average"
        assert estimate.comps_used == 3
        assert estimate.remodeled_count == 3

    def test_sqft_scaling(self, remodeled_comps, as_of):
        estimate = arv_from_comps(remodeled_comps, sqft=1980, as_of=as_of)
        assert estimate.sqft_adjustment == Decimal("1.1")
        assert estimate.value == Decimal("638000")

    def test_renovation_premium(self, as_of):
        comps = [
            comp("600000", Condition.REMODELED),
            comp("500000", Condition.UNREMODELED),
            comp("500000", Condition.UNREMODELED),
        ]
        estimate = arv_from_comps(comps, as_of=as_of)
        assert estimate.method == "renovation_premium"
        assert estimate.renovation_premium == Decimal("0.2")
        assert estimate.value == Decimal("600000")

    def test_unremodeled_uplift(self, as_of):
        comps = [comp("400000", Condition.UNREMODELED) for _ in range(3)]
        estimate = arv_from_comps(comps, as_of=as_of)
        assert estimate.method == "unremodeled_uplift"
        assert estimate.value == Decimal("500000")

    def test_unknown_condition_uplift(self, as_of):
        comps = [comp("400000"), comp("400000")]
        estimate = arv_from_comps(comps, as_of=as_of)
        assert estimate.method == "average_uplift"
        assert estimate.value == Decimal("480000")

    def test_no_comps(self):
        assert arv_from_comps([]) is None


class TestRenovationPremium:
    def test_capped(self):
        comps = [comp("700000", Condition.REMODELED), comp("500000", Condition.UNREMODELED)]
        assert renovation_premium(comps) == Decimal("0.25")

    def test_never_negative(self):
        comps = [comp("450000", Condition.REMODELED), comp("500000", Condition.UNREMODELED)]
        assert renovation_premium(comps) == Decimal("0")

    def test_needs_both_conditions(self, remodeled_comps):
        assert renovation_premium(remodeled_comps) is None


class TestSqftAdjustment:
    def test_bounded(self):
        comps = [comp("1", sqft=1000)]
        assert sqft_adjustment(comps, 5000) == Decimal("1.4")
        assert sqft_adjustment(comps, 100) == Decimal("0.6")

    def test_no_sizes(self):
        assert sqft_adjustment([comp("1")], 1800) == Decimal("1")
        assert sqft_adjustment([comp("1", sqft=1000)], 0) == Decimal("1")


class TestQuality:
    def test_complete_recent_close_comp(self, remodeled_comps, as_of):
        assert comp_quality_score(remodeled_comps[0], as_of) == 100

    def test_generated_comp(self, as_of):
        c = comp("500000", source="ai_estimate", is_empirical=False, sale_date=date(2025, 5, 1))
        # Completeness 30, recency 20, no distance, generated 5
        assert comp_quality_score(c, as_of) == 55

    def test_older_farther_comp(self, as_of):
        c = comp("500000", sale_date=date(2024, 10, 1), distance_miles=Decimal("1.5"))
        # Completeness 30, recency 10, distance 10, redfin 15
        assert comp_quality_score(c, as_of) == 65

    def test_labels(self):
        assert quality_label(80) == "High"
        assert quality_label(79) == "Medium"
        assert quality_label(60) == "Medium"
        assert quality_label(59) == "Low"

    def test_set_quality(self, remodeled_comps, as_of):
        quality = comp_quality(remodeled_comps, as_of)
        assert quality.score == 100
        assert quality.label == "High"
        assert quality.real_count == 3
        assert quality.estimated_count == 0

    def test_empty_set(self):
        assert comp_quality([]).label == "Low"


class TestStatistics:
    def test_summary(self, remodeled_comps):
        stats = comp_statistics(remodeled_comps)
        assert stats.count == 3
        assert stats.mean_price == Decimal("580000")
        assert stats.median_price == Decimal("580000")
        assert stats.min_price == Decimal("570000")
        assert stats.max_price == Decimal("590000")
        assert stats.mean_price_per_sqft.quantize(Decimal("0.01")) == Decimal("322.22")

    def test_empty(self):
        assert comp_statistics([]) is None
