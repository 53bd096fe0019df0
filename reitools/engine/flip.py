"""Fix-and-flip economics: holding costs, selling costs, profit and ROI.

Pure functions: Decimal in, dataclass out. No I/O.
"""

from dataclasses import replace
from decimal import Decimal

from reitools.models.assumptions import AnalysisInputs
from reitools.models.results import FlipAnalysis

ZERO = Decimal("0")

# 70% rule: pay no more than 70% of ARV less repairs
MAO_FACTOR = Decimal("0.70")


def monthly_holding_costs(inputs: AnalysisInputs) -> dict[str, Decimal]:
    """Monthly carrying costs while the flip is in progress."""
    return {
        "mortgage_interest": inputs.loan_amount * inputs.interest_rate / 12,
        "heloc_interest": inputs.heloc_amount * inputs.heloc_rate / 12,
        "property_tax": inputs.annual_property_tax / 12,
        "insurance": inputs.monthly_insurance,
        "utilities": inputs.utilities_monthly,
    }


def max_allowable_offer(arv: Decimal, rehab_cost: Decimal) -> Decimal:
    return arv * MAO_FACTOR - rehab_cost


def analyze_flip(inputs: AnalysisInputs, arv: Decimal) -> FlipAnalysis:
    """Profit and ROI for buying, renovating and reselling at ARV.

    Cash deployed is the down payment, the rehab budget with contingency,
    and any direct cash investment. Financed amounts are excluded.
    """
    contingency = inputs.rehab_cost * inputs.contingency_rate
    total_rehab = inputs.rehab_cost + contingency
    acquisition = inputs.purchase_price * inputs.closing_cost_rate

    monthly = sum(monthly_holding_costs(inputs).values(), ZERO)
    holding = monthly * inputs.months_to_flip
    selling = arv * inputs.selling_rate

    total_cost = inputs.purchase_price + total_rehab + acquisition
    net_profit = arv - total_cost - holding - selling
    cash_deployed = inputs.down_payment + total_rehab + inputs.cash_investment
    roi = net_profit / cash_deployed if cash_deployed > 0 else ZERO

    return FlipAnalysis(
        purchase_price=inputs.purchase_price,
        rehab_cost=inputs.rehab_cost,
        contingency=contingency,
        total_rehab=total_rehab,
        acquisition_cost=acquisition,
        arv=arv,
        months=inputs.months_to_flip,
        monthly_holding=monthly,
        holding_costs=holding,
        selling_costs=selling,
        total_cost=total_cost,
        net_profit=net_profit,
        cash_deployed=cash_deployed,
        roi=roi,
        roi_per_month=roi / inputs.months_to_flip if inputs.months_to_flip > 0 else ZERO,
        max_allowable_offer=max_allowable_offer(arv, inputs.rehab_cost),
    )


def flip_cases(
    inputs: AnalysisInputs,
    arv: Decimal,
    arv_variance: Decimal = Decimal("0.10"),
    rehab_variance: Decimal = Decimal("0.20"),
) -> dict[str, FlipAnalysis]:
    """Best, base and worst case.

    Worst case lowers ARV by arv_variance and raises rehab by rehab_variance.
    Best case raises ARV and trims rehab, both by arv_variance.
    """
    best = replace(inputs, rehab_cost=inputs.rehab_cost * (1 - arv_variance))
    worst = replace(inputs, rehab_cost=inputs.rehab_cost * (1 + rehab_variance))
    return {
        "best": analyze_flip(best, arv * (1 + arv_variance)),
        "base": analyze_flip(inputs, arv),
        "worst": analyze_flip(worst, arv * (1 - arv_variance)),
    }


def meets_flip_rules(
    analysis: FlipAnalysis,
    min_roi: Decimal = Decimal("0.20"),
    min_profit: Decimal = Decimal("30000"),
    max_purchase_to_arv: Decimal = Decimal("0.80"),
) -> dict[str, bool]:
    """Investor rules of thumb for accepting a flip."""
    ratio = analysis.purchase_price / analysis.arv if analysis.arv > 0 else Decimal("1")
    return {
        "roi": analysis.roi >= min_roi,
        "profit": analysis.net_profit >= min_profit,
        "purchase_to_arv": ratio <= max_purchase_to_arv,
    }
