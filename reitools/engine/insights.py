"""Recommendations, one-line insights and improvement suggestions."""

from decimal import Decimal

from reitools.engine.alerts import has_errors
from reitools.engine.flip import max_allowable_offer
from reitools.models.assumptions import AnalysisInputs
from reitools.models.results import (
    Alert,
    FlipAnalysis,
    Recommendation,
    RentalAnalysis,
    Suggestion,
)

ZERO = Decimal("0")

TARGET_MONTHLY_CASH_FLOW = Decimal("200")
TARGET_EXPENSE_RATIO = Decimal("0.45")

# Best first
RECOMMENDATION_ORDER = [
    Recommendation.STRONG_BUY,
    Recommendation.BUY,
    Recommendation.PROCEED_WITH_CAUTION,
    Recommendation.DO_NOT_PROCEED,
    Recommendation.PASS,
]


def recommend(score: Decimal, alerts: list[Alert]) -> Recommendation:
    """Tier from score band; any error alert forces DO_NOT_PROCEED."""
    if has_errors(alerts):
        return Recommendation.DO_NOT_PROCEED
    if score >= 80:
        return Recommendation.STRONG_BUY
    if score >= 60:
        return Recommendation.BUY
    if score >= 40:
        return Recommendation.PROCEED_WITH_CAUTION
    return Recommendation.PASS


def best_recommendation(*recommendations: Recommendation) -> Recommendation:
    return min(recommendations, key=RECOMMENDATION_ORDER.index)


def flip_insights(flip: FlipAnalysis) -> list[str]:
    insights: list[str] = []
    roi = flip.roi
    if roi >= Decimal("0.30"):
        insights.append(f"Exceptional {roi:.0%} ROI, well above the 20% target")
    elif roi >= Decimal("0.20"):
        insights.append(f"Strong {roi:.0%} ROI meets investment criteria")
    elif roi >= Decimal("0.15"):
        insights.append(f"{roi:.0%} ROI is acceptable but below the optimal range")
    else:
        insights.append(f"{roi:.0%} ROI is below the 15% minimum")

    if flip.months > 0:
        per_month = flip.net_profit / flip.months
        if per_month >= 5000:
            insights.append(f"Earning ${per_month:,.0f}/month, excellent velocity")
        elif per_month >= 3000:
            insights.append(f"Earning ${per_month:,.0f}/month, good velocity")
        else:
            insights.append(f"Earning ${per_month:,.0f}/month; consider a faster timeline")

    if flip.purchase_price > 0:
        ratio = flip.rehab_cost / flip.purchase_price
        if ratio <= Decimal("0.15"):
            insights.append(f"Light rehab ({ratio:.0%} of purchase), lower risk")
        elif ratio <= Decimal("0.30"):
            insights.append(f"Moderate rehab ({ratio:.0%} of purchase), manageable scope")
        elif ratio <= Decimal("0.50"):
            insights.append(f"Heavy rehab ({ratio:.0%} of purchase), higher risk")
        else:
            insights.append(f"Extensive rehab ({ratio:.0%} of purchase), very high risk")
    return insights


def rental_insights(rental: RentalAnalysis) -> list[str]:
    insights: list[str] = []
    cf = rental.monthly_cash_flow
    if cf >= 500:
        insights.append(f"Strong ${cf:,.0f}/month cash flow")
    elif cf >= 300:
        insights.append(f"Solid ${cf:,.0f}/month cash flow")
    elif cf >= 100:
        insights.append(f"Modest ${cf:,.0f}/month cash flow, minimal buffer")
    elif cf >= 0:
        insights.append(f"Minimal ${cf:,.0f}/month cash flow, very tight margins")
    else:
        insights.append(f"Losing ${abs(cf):,.0f}/month")

    coc = rental.cash_on_cash
    if coc is not None:
        if coc >= Decimal("0.15"):
            insights.append(f"Excellent {coc:.1%} cash-on-cash return")
        elif coc >= Decimal("0.12"):
            insights.append(f"Strong {coc:.1%} cash-on-cash return")
        elif coc >= Decimal("0.08"):
            insights.append(f"{coc:.1%} cash-on-cash return is acceptable but below optimal")
        else:
            insights.append(f"{coc:.1%} cash-on-cash return is below the 8% minimum")

    cap = rental.cap_rate
    if cap >= Decimal("0.10"):
        insights.append(f"{cap:.1%} cap rate, excellent value")
    elif cap >= Decimal("0.08"):
        insights.append(f"{cap:.1%} cap rate, good value")
    elif cap >= Decimal("0.06"):
        insights.append(f"{cap:.1%} cap rate, fair value")
    else:
        insights.append(f"{cap:.1%} cap rate, may be overpriced")

    dscr = rental.dscr
    if dscr is None:
        insights.append("No debt service; purchased without financing")
    elif dscr >= Decimal("1.5"):
        insights.append(f"DSCR of {dscr:.2f}, excellent financing qualification")
    elif dscr >= Decimal("1.25"):
        insights.append(f"DSCR of {dscr:.2f}, strong financing qualification")
    elif dscr >= 1:
        insights.append(f"DSCR of {dscr:.2f}, marginal financing qualification")
    else:
        insights.append(f"DSCR of {dscr:.2f}, may not qualify for financing")

    if rental.effective_gross_income > 0:
        ratio = rental.expense_ratio
        if ratio <= Decimal("0.40"):
            insights.append(f"Operating expenses are {ratio:.0%} of income, efficient")
        elif ratio <= Decimal("0.50"):
            insights.append(f"Operating expenses are {ratio:.0%} of income, typical")
        else:
            insights.append(f"Operating expenses are {ratio:.0%} of income, high")
    return insights


def target_rent(
    inputs: AnalysisInputs,
    rental: RentalAnalysis,
    monthly_cash_flow: Decimal = TARGET_MONTHLY_CASH_FLOW,
) -> Decimal | None:
    """Monthly rent that yields the target cash flow.

    Vacancy and management scale with rent; every other expense and the
    debt service are fixed.
    """
    management = rental.expenses.get("management", ZERO)
    fixed = rental.operating_expenses - management + rental.annual_debt_service
    retained = 1 - inputs.vacancy_rate
    if inputs.management_enabled:
        retained *= 1 - inputs.management_rate
    if retained <= 0:
        return None
    return (monthly_cash_flow * 12 + fixed) / (12 * retained)


def flip_suggestions(inputs: AnalysisInputs, flip: FlipAnalysis) -> list[Suggestion]:
    """70% rule price target and the rehab budget that would satisfy it."""
    suggestions: list[Suggestion] = []
    mao = max_allowable_offer(flip.arv, inputs.rehab_cost)
    if 0 < mao < inputs.purchase_price:
        suggestions.append(Suggestion(
            category="purchase_price",
            current=inputs.purchase_price,
            target=mao,
            message=f"Negotiate the purchase price down to ${mao:,.0f} to meet the 70% rule",
            impact="high",
        ))
    target_rehab = flip.arv * Decimal("0.70") - inputs.purchase_price
    if 0 < target_rehab < inputs.rehab_cost:
        suggestions.append(Suggestion(
            category="rehab_cost",
            current=inputs.rehab_cost,
            target=target_rehab,
            message=f"Reduce the rehab budget to ${target_rehab:,.0f} to meet the 70% rule",
            impact="high",
        ))
    return suggestions


def rental_suggestions(inputs: AnalysisInputs, rental: RentalAnalysis) -> list[Suggestion]:
    suggestions: list[Suggestion] = []
    if rental.monthly_cash_flow < TARGET_MONTHLY_CASH_FLOW:
        rent = target_rent(inputs, rental)
        if rent is not None:
            suggestions.append(Suggestion(
                category="monthly_rent",
                current=inputs.monthly_rent,
                target=rent,
                message=f"Rent of ${rent:,.0f} would produce $200/month cash flow",
                impact="high",
            ))
    if rental.expense_ratio > TARGET_EXPENSE_RATIO:
        target = rental.effective_gross_income * TARGET_EXPENSE_RATIO
        suggestions.append(Suggestion(
            category="operating_expenses",
            current=rental.operating_expenses,
            target=target,
            message=f"Reduce annual operating expenses to ${target:,.0f} (45% of income)",
            impact="medium",
        ))
    return suggestions
