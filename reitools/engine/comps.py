"""Comparable-sale analysis: recency and similarity filters, condition-aware ARV,
per-comp quality scoring, and summary statistics.

Pure functions. No I/O. Dates are evaluated against an explicit `as_of`
so results are reproducible.
"""

import statistics
from datetime import date
from decimal import Decimal

from reitools.models.property import ComparableProperty, Condition
from reitools.models.valuation import CompEstimate, CompQuality, CompStatistics

ZERO = Decimal("0")

MAX_COMP_AGE_MONTHS = 24
MIN_SIMILAR_COMPS = 3
SQFT_TOLERANCE = Decimal("0.20")
BED_TOLERANCE = 1
BATH_TOLERANCE = Decimal("1")

MAX_RENOVATION_PREMIUM = Decimal("0.25")
UNREMODELED_UPLIFT = Decimal("1.25")
UNKNOWN_CONDITION_UPLIFT = Decimal("1.20")

# Bound the sqft adjustment to ±40%
MIN_SQFT_RATIO = Decimal("0.6")
MAX_SQFT_RATIO = Decimal("1.4")

SOURCE_QUALITY = {
    "private_zillow": 20,
    "us_real_estate": 20,
    "redfin": 15,
    "ai_estimate": 5,
}


def months_between(earlier: date, later: date) -> int:
    return (later.year - earlier.year) * 12 + later.month - earlier.month


def filter_by_date(
    comps: list[ComparableProperty],
    as_of: date | None = None,
    max_months: int = MAX_COMP_AGE_MONTHS,
) -> list[ComparableProperty]:
    """Sales within the last `max_months`. Undated comps are dropped."""
    as_of = as_of or date.today()
    return [
        c for c in comps
        if c.sale_date is not None and 0 <= months_between(c.sale_date, as_of) <= max_months
    ]


def is_similar(
    comp: ComparableProperty,
    sqft: int = 0,
    bedrooms: int = 0,
    bathrooms: Decimal = ZERO,
) -> bool:
    """Within ±20% sqft, ±1 bed and ±1 bath of the subject.

    A subject attribute of zero is unknown and does not constrain.
    """
    if sqft > 0 and comp.sqft > 0:
        if abs(comp.sqft - sqft) > sqft * SQFT_TOLERANCE:
            return False
    if bedrooms > 0 and comp.bedrooms > 0:
        if abs(comp.bedrooms - bedrooms) > BED_TOLERANCE:
            return False
    if bathrooms > 0 and comp.bathrooms > 0:
        if abs(comp.bathrooms - bathrooms) > BATH_TOLERANCE:
            return False
    return True


def filter_by_similarity(
    comps: list[ComparableProperty],
    sqft: int = 0,
    bedrooms: int = 0,
    bathrooms: Decimal = ZERO,
) -> list[ComparableProperty]:
    return [c for c in comps if is_similar(c, sqft, bedrooms, bathrooms)]


def select_comps(
    comps: list[ComparableProperty],
    sqft: int = 0,
    bedrooms: int = 0,
    bathrooms: Decimal = ZERO,
    as_of: date | None = None,
) -> list[ComparableProperty]:
    """Narrow comps to recent, similar sales.

    Each filter is applied only if it leaves at least three comps;
    otherwise the wider set is kept.
    """
    selected = comps
    recent = filter_by_date(selected, as_of)
    if len(recent) >= MIN_SIMILAR_COMPS:
        selected = recent
    similar = filter_by_similarity(selected, sqft, bedrooms, bathrooms)
    if len(similar) >= MIN_SIMILAR_COMPS:
        selected = similar
    return selected


def _mean(values: list[Decimal]) -> Decimal:
    return sum(values, ZERO) / len(values)


def renovation_premium(comps: list[ComparableProperty]) -> Decimal | None:
    """Price lift of remodeled over unremodeled comps, capped at 25%.

    None unless both conditions are represented. Never negative.
    """
    remodeled = [c.price for c in comps if c.condition == Condition.REMODELED]
    unremodeled = [c.price for c in comps if c.condition == Condition.UNREMODELED]
    if not remodeled or not unremodeled:
        return None
    base = _mean(unremodeled)
    premium = (_mean(remodeled) - base) / base
    return max(ZERO, min(premium, MAX_RENOVATION_PREMIUM))


def sqft_adjustment(comps: list[ComparableProperty], subject_sqft: int) -> Decimal:
    """Ratio of subject size to the comps' average size, bounded to ±40%."""
    sized = [c.sqft for c in comps if c.sqft > 0]
    if subject_sqft <= 0 or not sized:
        return Decimal("1")
    ratio = Decimal(subject_sqft) / (Decimal(sum(sized)) / len(sized))
    return max(MIN_SQFT_RATIO, min(MAX_SQFT_RATIO, ratio))


def arv_from_comps(
    comps: list[ComparableProperty],
    sqft: int = 0,
    bedrooms: int = 0,
    bathrooms: Decimal = ZERO,
    as_of: date | None = None,
) -> CompEstimate | None:
    """Post-renovation value implied by comparable sales.

    Three or more remodeled comps are averaged directly. With both
    remodeled and unremodeled comps, the unremodeled average is lifted by
    the observed renovation premium. Otherwise unremodeled comps are
    lifted 25% and comps of unknown condition 20%. The result is scaled
    by the subject's size relative to the comps used.
    """
    if not comps:
        return None
    used = select_comps(comps, sqft, bedrooms, bathrooms, as_of)
    remodeled = [c for c in used if c.condition == Condition.REMODELED]
    unremodeled = [c for c in used if c.condition == Condition.UNREMODELED]
    premium = renovation_premium(used)

    if len(remodeled) >= MIN_SIMILAR_COMPS:
        basis = remodeled
        value = _mean([c.price for c in remodeled])
        method = "remodeled_average"
    elif remodeled and unremodeled and premium is not None:
        basis = unremodeled
        value = _mean([c.price for c in unremodeled]) * (1 + premium)
        method = "renovation_premium"
    elif len(unremodeled) >= MIN_SIMILAR_COMPS:
        basis = unremodeled
        value = _mean([c.price for c in unremodeled]) * UNREMODELED_UPLIFT
        method = "unremodeled_uplift"
    else:
        basis = used
        value = _mean([c.price for c in used]) * UNKNOWN_CONDITION_UPLIFT
        method = "average_uplift"

    adjustment = sqft_adjustment(basis, sqft)
    return CompEstimate(
        value=value * adjustment,
        method=method,
        comps_used=len(used),
        remodeled_count=len(remodeled),
        unremodeled_count=len(unremodeled),
        renovation_premium=premium,
        sqft_adjustment=adjustment,
    )


def comp_quality_score(comp: ComparableProperty, as_of: date | None = None) -> int:
    """0-100 score from data completeness, recency, proximity and source."""
    as_of = as_of or date.today()
    score = 0

    score += 10 if comp.address else 0
    score += 10 if comp.price > 0 else 0
    score += 10 if comp.sqft > 0 else 0
    score += 10 if comp.sale_date else 0

    if comp.sale_date:
        months = months_between(comp.sale_date, as_of)
        if months <= 3:
            score += 20
        elif months <= 6:
            score += 15
        elif months <= 12:
            score += 10
        elif months <= 24:
            score += 5

    if comp.distance_miles is not None:
        if comp.distance_miles <= Decimal("0.5"):
            score += 20
        elif comp.distance_miles <= 1:
            score += 15
        elif comp.distance_miles <= 2:
            score += 10
        elif comp.distance_miles <= 5:
            score += 5

    # Generated comps earn the minimum regardless of source label
    score += SOURCE_QUALITY.get(comp.source, 10) if comp.is_empirical else 5
    return min(score, 100)


def quality_label(score: int) -> str:
    if score >= 80:
        return "High"
    if score >= 60:
        return "Medium"
    return "Low"


def comp_quality(comps: list[ComparableProperty], as_of: date | None = None) -> CompQuality:
    """Average quality across the comp set."""
    real = sum(1 for c in comps if c.is_empirical)
    if not comps:
        return CompQuality(score=0, label="Low", real_count=0, estimated_count=0)
    score = round(sum(comp_quality_score(c, as_of) for c in comps) / len(comps))
    return CompQuality(
        score=score,
        label=quality_label(score),
        real_count=real,
        estimated_count=len(comps) - real,
    )


def comp_statistics(comps: list[ComparableProperty]) -> CompStatistics | None:
    if not comps:
        return None
    prices = [c.price for c in comps]
    per_sqft = [p for p in (c.price_per_sqft for c in comps) if p is not None]
    return CompStatistics(
        count=len(comps),
        mean_price=_mean(prices),
        median_price=statistics.median(prices),
        min_price=min(prices),
        max_price=max(prices),
        mean_price_per_sqft=_mean(per_sqft) if per_sqft else None,
    )
