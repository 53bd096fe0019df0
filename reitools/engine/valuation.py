"""Multi-source ARV: weighted blend of comp-derived and external estimates,
confidence scoring, and validation against the property's price history.

Pure functions. No I/O.
"""

import logging
from collections.abc import Mapping
from datetime import date
from decimal import Decimal

from reitools.config import settings
from reitools.engine.comps import arv_from_comps
from reitools.models.property import ComparableProperty, PricePoint
from reitools.models.valuation import ARVResult, TrendValidation, ValuationEstimate

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

COMPS_SOURCE = "comps"
FALLBACK_SOURCE = "purchase_price"
FALLBACK_MULTIPLIER = Decimal("1.15")

# Confidence is 100 below 5% CV, falling linearly to 50 at 20% CV
CV_FULL_CONFIDENCE = Decimal("0.05")
CV_FLOOR = Decimal("0.20")
MIN_DISPERSION_CONFIDENCE = Decimal("50")
TARGET_COMP_COUNT = 5
MISSING_COMP_PENALTY = Decimal("5")
NON_EMPIRICAL_PENALTY = Decimal("30")
LOW_CONFIDENCE_BELOW = Decimal("60")

DAYS_PER_YEAR = Decimal("365.25")


def dispersion_confidence(cv: Decimal) -> Decimal:
    if cv <= CV_FULL_CONFIDENCE:
        return HUNDRED
    drop = (cv - CV_FULL_CONFIDENCE) / (CV_FLOOR - CV_FULL_CONFIDENCE) * 50
    return max(MIN_DISPERSION_CONFIDENCE, HUNDRED - drop)


def weighted_spread(estimates: list[ValuationEstimate]) -> tuple[Decimal, Decimal]:
    """Weighted mean and standard deviation of normalized estimates."""
    mean = sum((e.value * e.weight for e in estimates), ZERO)
    variance = sum(((e.value - mean) ** 2 * e.weight for e in estimates), ZERO)
    return mean, variance.sqrt()


def coefficient_of_variation(values: list[Decimal]) -> Decimal:
    if len(values) < 2:
        return ZERO
    mean = sum(values, ZERO) / len(values)
    if mean <= 0:
        return ZERO
    variance = sum(((v - mean) ** 2 for v in values), ZERO) / len(values)
    return variance.sqrt() / mean


def normalize_weights(weighted: list[tuple[str, Decimal, Decimal]]) -> list[ValuationEstimate]:
    """Rescale (source, value, weight) triples so the weights sum to 1."""
    total = sum((w for _, _, w in weighted), ZERO)
    if total <= 0:
        raise ValueError("Valuation weights must sum to a positive total")
    return [
        ValuationEstimate(source=source, value=value, weight=weight / total)
        for source, value, weight in weighted
    ]


def aggregate_arv(
    comps: list[ComparableProperty],
    external_estimates: Mapping[str, Decimal | None] | None = None,
    sqft: int = 0,
    bedrooms: int = 0,
    bathrooms: Decimal = ZERO,
    price_history: list[PricePoint] | None = None,
    as_of: date | None = None,
    comps_weight: Decimal | None = None,
    external_weight: Decimal | None = None,
) -> ARVResult:
    """Blend the comp-derived value with external automated estimates.

    The comp estimate carries weight 0.50 and each external estimate 0.25;
    weights are renormalized over whichever sources produced a value.
    External estimates that are missing or non-positive are ignored.

    Raises:
        ValueError: neither comps nor any external estimate produced a value,
            or the configured weights sum to zero.
    """
    comps_weight = comps_weight if comps_weight is not None else Decimal(str(settings.comps_weight))
    external_weight = (
        external_weight if external_weight is not None else Decimal(str(settings.external_weight))
    )

    weighted: list[tuple[str, Decimal, Decimal]] = []
    comp_estimate = arv_from_comps(comps, sqft, bedrooms, bathrooms, as_of)
    if comp_estimate is not None and comp_estimate.value > 0:
        weighted.append((COMPS_SOURCE, comp_estimate.value, comps_weight))
    for source, value in (external_estimates or {}).items():
        if value is not None and value > 0:
            weighted.append((source, Decimal(str(value)), external_weight))

    if not weighted:
        raise ValueError("No valuation estimates available")

    sources = normalize_weights(weighted)
    arv, std = weighted_spread(sources)

    if len(sources) > 1:
        cv = std / arv if arv > 0 else ZERO
    else:
        cv = coefficient_of_variation([c.price for c in comps])
    confidence = dispersion_confidence(cv)

    missing = max(0, TARGET_COMP_COUNT - len(comps))
    confidence -= missing * MISSING_COMP_PENALTY
    if comps:
        estimated_share = Decimal(sum(1 for c in comps if not c.is_empirical)) / len(comps)
        confidence -= estimated_share * NON_EMPIRICAL_PENALTY
    confidence = max(ZERO, min(HUNDRED, confidence))

    warnings: list[str] = []
    trend = None
    if price_history:
        trend = validate_against_trend(arv, price_history, as_of)
        if trend is not None and trend.warning:
            warnings.append(trend.warning)
            logger.warning("ARV trend check: %s", trend.warning)

    return ARVResult(
        arv=arv,
        confidence=confidence,
        sources=sources,
        confidence_interval=(arv - std, arv + std),
        low_confidence=confidence < LOW_CONFIDENCE_BELOW,
        warnings=warnings,
        trend=trend,
    )


def compound_appreciation(price_history: list[PricePoint]) -> Decimal | None:
    """Compound annual growth rate between the first and last recorded prices."""
    points = sorted((p for p in price_history if p.price > 0), key=lambda p: p.date)
    if len(points) < 2:
        return None
    first, last = points[0], points[-1]
    years = Decimal((last.date - first.date).days) / DAYS_PER_YEAR
    if years <= 0:
        return None
    return (last.price / first.price) ** (1 / years) - 1


def validate_against_trend(
    arv: Decimal,
    price_history: list[PricePoint],
    as_of: date | None = None,
    threshold: Decimal | None = None,
) -> TrendValidation | None:
    """Compare ARV to the last sale grown at the historical appreciation rate.

    Never blocks: a deviation beyond the threshold only sets a warning.
    Returns None when the history is too short to infer a rate.
    """
    rate = compound_appreciation(price_history)
    if rate is None:
        return None
    threshold = threshold if threshold is not None else Decimal(str(settings.trend_deviation_threshold))
    as_of = as_of or date.today()

    last = max((p for p in price_history if p.price > 0), key=lambda p: p.date)
    years = max(ZERO, Decimal((as_of - last.date).days) / DAYS_PER_YEAR)
    expected = last.price * (1 + rate) ** years
    deviation = (arv - expected) / expected

    warning = None
    if abs(deviation) > threshold:
        direction = "higher" if deviation > 0 else "lower"
        warning = (
            f"ARV is {abs(deviation):.1%} {direction} than the historical trend projects "
            f"(${expected:,.0f})"
        )
    return TrendValidation(
        annual_rate=rate,
        expected_value=expected,
        deviation_pct=deviation,
        is_consistent=warning is None,
        warning=warning,
    )


def fallback_arv(purchase_price: Decimal) -> ARVResult:
    """Purchase price x 1.15 when no comparable data could be acquired."""
    value = purchase_price * FALLBACK_MULTIPLIER
    return ARVResult(
        arv=value,
        confidence=ZERO,
        sources=[ValuationEstimate(source=FALLBACK_SOURCE, value=value, weight=Decimal("1"))],
        confidence_interval=(value, value),
        low_confidence=True,
        warnings=["No comparable data available; ARV estimated at 115% of purchase price"],
    )
