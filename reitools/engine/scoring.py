"""0-100 deal quality scores for flips and rentals.

Each metric is mapped through an excellent/good/fair/poor threshold table
to a 0-100 sub-score; the total is the weighted sum of sub-scores.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from reitools.models.results import FlipAnalysis, RentalAnalysis, ScoreBreakdown, ScoreComparison

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Thresholds:
    excellent: Decimal
    good: Decimal
    fair: Decimal
    poor: Decimal


def _t(excellent: str, good: str, fair: str, poor: str) -> Thresholds:
    return Thresholds(Decimal(excellent), Decimal(good), Decimal(fair), Decimal(poor))


FLIP_WEIGHTS = {
    "roi": Decimal("0.40"),
    "profit": Decimal("0.30"),
    "timeline": Decimal("0.15"),
    "risk": Decimal("0.15"),
}
RENTAL_WEIGHTS = {
    "cash_flow": Decimal("0.25"),
    "roi": Decimal("0.25"),
    "cap_rate": Decimal("0.20"),
    "dscr": Decimal("0.15"),
    "market": Decimal("0.15"),
}

FLIP_ROI = _t("0.30", "0.20", "0.15", "0.10")
FLIP_PROFIT = _t("50000", "30000", "20000", "10000")
FLIP_TIMELINE = _t("3", "6", "9", "12")  # Months, lower is better

RENTAL_CASH_FLOW = _t("500", "300", "100", "0")  # Monthly
RENTAL_ROI = _t("0.15", "0.12", "0.08", "0.05")
RENTAL_CAP_RATE = _t("0.10", "0.08", "0.06", "0.04")
RENTAL_DSCR = _t("1.5", "1.25", "1.1", "1.0")

NEUTRAL_MARKET_SCORE = Decimal("50")

LABELS = [
    (Decimal("80"), "Excellent Investment"),
    (Decimal("60"), "Good Investment"),
    (Decimal("40"), "Proceed with Caution"),
    (Decimal("20"), "High Risk"),
]


def _interpolate(value: Decimal, low: Decimal, high: Decimal, base: int) -> Decimal:
    """base + 25 x position of value between low and high."""
    return base + (value - low) / (high - low) * 25


def score_metric(value: Decimal | None, t: Thresholds, higher_is_better: bool = True) -> Decimal:
    """Piecewise-linear 0-100 score: 100 at excellent, 75 at good, 50 at fair, 25 at poor."""
    if value is None:
        return ZERO
    if higher_is_better:
        if value >= t.excellent:
            return HUNDRED
        if value >= t.good:
            return _interpolate(value, t.good, t.excellent, 75)
        if value >= t.fair:
            return _interpolate(value, t.fair, t.good, 50)
        if value >= t.poor:
            return _interpolate(value, t.poor, t.fair, 25)
        if t.poor <= 0:
            return ZERO
        return max(ZERO, value / t.poor * 25)

    if value <= t.excellent:
        return HUNDRED
    if value <= t.good:
        return 75 + (t.good - value) / (t.good - t.excellent) * 25
    if value <= t.fair:
        return 50 + (t.fair - value) / (t.fair - t.good) * 25
    if value <= t.poor:
        return 25 + (t.poor - value) / (t.poor - t.fair) * 25
    return max(ZERO, 25 - (value - t.poor) / t.poor * 25)


def rehab_risk_score(rehab_cost: Decimal, purchase_price: Decimal) -> Decimal:
    """Heavier rehab relative to price is riskier."""
    ratio = rehab_cost / purchase_price if purchase_price > 0 else ZERO
    if ratio > Decimal("0.50"):
        return Decimal("25")
    if ratio > Decimal("0.30"):
        return Decimal("50")
    if ratio > Decimal("0.15"):
        return Decimal("75")
    return HUNDRED


def market_score(cash_on_cash: Decimal | None, market_average: Decimal | None) -> Decimal:
    """Return relative to the area's average CoC; neutral without market data."""
    if not market_average or cash_on_cash is None:
        return NEUTRAL_MARKET_SCORE
    ratio = cash_on_cash / market_average
    if ratio >= Decimal("1.2"):
        return HUNDRED
    if ratio >= Decimal("1.1"):
        return Decimal("80")
    if ratio >= Decimal("0.9"):
        return Decimal("60")
    if ratio >= Decimal("0.8"):
        return Decimal("40")
    return Decimal("20")


def score_label(total: Decimal) -> str:
    for floor, label in LABELS:
        if total >= floor:
            return label
    return "Not Recommended"


def star_rating(total: Decimal) -> int:
    stars = int((total / 20).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(5, stars))


def strengths_and_weaknesses(
    sub_scores: dict[str, Decimal], weights: dict[str, Decimal], limit: int = 3
) -> tuple[list[str], list[str]]:
    """Sub-scores >= 75 are strengths, < 50 weaknesses; heaviest weights first."""
    by_weight = sorted(sub_scores, key=lambda k: weights.get(k, ZERO), reverse=True)
    strengths = [k for k in by_weight if sub_scores[k] >= 75]
    weaknesses = [k for k in by_weight if sub_scores[k] < 50]
    return strengths[:limit], weaknesses[:limit]


def _breakdown(strategy: str, sub_scores: dict[str, Decimal], weights: dict[str, Decimal]) -> ScoreBreakdown:
    raw = sum((sub_scores[k] * weights[k] for k in weights), ZERO)
    total = raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    strengths, weaknesses = strengths_and_weaknesses(sub_scores, weights)
    return ScoreBreakdown(
        strategy=strategy,
        sub_scores=sub_scores,
        weights=weights,
        total=total,
        label=score_label(total),
        stars=star_rating(total),
        strengths=strengths,
        weaknesses=weaknesses,
    )


def score_flip(flip: FlipAnalysis) -> ScoreBreakdown:
    sub_scores = {
        "roi": score_metric(flip.roi, FLIP_ROI),
        "profit": score_metric(flip.net_profit, FLIP_PROFIT),
        "timeline": score_metric(Decimal(flip.months), FLIP_TIMELINE, higher_is_better=False),
        "risk": rehab_risk_score(flip.rehab_cost, flip.purchase_price),
    }
    return _breakdown("flip", sub_scores, FLIP_WEIGHTS)


def score_rental(rental: RentalAnalysis, market_average_coc: Decimal | None = None) -> ScoreBreakdown:
    """Rental score. A loan-free rental scores full marks on DSCR."""
    dscr = (
        score_metric(rental.dscr, RENTAL_DSCR)
        if rental.dscr is not None
        else HUNDRED
    )
    sub_scores = {
        "cash_flow": score_metric(rental.monthly_cash_flow, RENTAL_CASH_FLOW),
        "roi": score_metric(rental.cash_on_cash, RENTAL_ROI),
        "cap_rate": score_metric(rental.cap_rate, RENTAL_CAP_RATE),
        "dscr": dscr,
        "market": market_score(rental.cash_on_cash, market_average_coc),
    }
    return _breakdown("rental", sub_scores, RENTAL_WEIGHTS)


def compare_properties(scored: dict[str, ScoreBreakdown]) -> ScoreComparison | None:
    """Rank several scored properties, best first."""
    if not scored:
        return None
    ranked = sorted(scored.items(), key=lambda item: item[1].total, reverse=True)
    totals = [s.total for s in scored.values()]
    return ScoreComparison(
        ranked=ranked,
        average=sum(totals, ZERO) / len(totals),
        highest=max(totals),
        lowest=min(totals),
    )
