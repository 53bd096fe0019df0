"""What-if scenarios and the ARV x rehab sensitivity grid.

A ScenarioAdjustment perturbs ARV, rehab, rent, rate and timeline; the
flip and rental models are re-run on the adjusted inputs. The same
adjustment path is used by the Monte-Carlo engine.
"""

from dataclasses import replace
from decimal import Decimal

from reitools.engine.flip import analyze_flip
from reitools.engine.rental import analyze_rental
from reitools.models.assumptions import AnalysisInputs
from reitools.models.results import (
    FlipAnalysis,
    RentalAnalysis,
    ScenarioAdjustment,
    ScenarioResult,
    SensitivityMatrix,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

SENSITIVITY_STEPS = [Decimal(s) for s in ("-10", "-5", "0", "5", "10")]


def apply_adjustment(
    inputs: AnalysisInputs,
    arv: Decimal,
    adjustment: ScenarioAdjustment,
) -> tuple[AnalysisInputs, Decimal]:
    """Adjusted inputs and ARV. Rate never goes below zero, timeline below one month."""
    adjusted = replace(
        inputs,
        rehab_cost=inputs.rehab_cost * (1 + adjustment.rehab_pct / HUNDRED),
        monthly_rent=inputs.monthly_rent * (1 + adjustment.rent_pct / HUNDRED),
        interest_rate=max(ZERO, inputs.interest_rate + adjustment.rate_delta / HUNDRED),
        months_to_flip=max(1, inputs.months_to_flip + adjustment.months_delta),
    )
    return adjusted, arv * (1 + adjustment.arv_pct / HUNDRED)


def _delta(new: Decimal | None, base: Decimal | None) -> Decimal | None:
    if new is None or base is None:
        return None
    return new - base


def scenario_deltas(
    flip: FlipAnalysis,
    rental: RentalAnalysis,
    base_flip: FlipAnalysis,
    base_rental: RentalAnalysis,
) -> dict[str, Decimal]:
    deltas = {
        "net_profit": _delta(flip.net_profit, base_flip.net_profit),
        "roi": _delta(flip.roi, base_flip.roi),
        "holding_costs": _delta(flip.holding_costs, base_flip.holding_costs),
        "monthly_cash_flow": _delta(rental.monthly_cash_flow, base_rental.monthly_cash_flow),
        "noi": _delta(rental.noi, base_rental.noi),
        "cap_rate": _delta(rental.cap_rate, base_rental.cap_rate),
        "cash_on_cash": _delta(rental.cash_on_cash, base_rental.cash_on_cash),
    }
    return {k: v for k, v in deltas.items() if v is not None}


def run_scenario(
    inputs: AnalysisInputs,
    arv: Decimal,
    adjustment: ScenarioAdjustment,
) -> ScenarioResult:
    """Re-run flip and rental on adjusted inputs and report deltas from base."""
    base_flip = analyze_flip(inputs, arv)
    base_rental = analyze_rental(inputs)
    adjusted, adjusted_arv = apply_adjustment(inputs, arv, adjustment)
    flip = analyze_flip(adjusted, adjusted_arv)
    rental = analyze_rental(adjusted)
    return ScenarioResult(
        adjustment=adjustment,
        flip=flip,
        rental=rental,
        deltas=scenario_deltas(flip, rental, base_flip, base_rental),
    )


def run_scenarios(
    inputs: AnalysisInputs,
    arv: Decimal,
    adjustments: list[ScenarioAdjustment],
) -> list[ScenarioResult]:
    return [run_scenario(inputs, arv, a) for a in adjustments]


def sensitivity_matrix(
    inputs: AnalysisInputs,
    arv: Decimal,
    arv_steps: list[Decimal] | None = None,
    rehab_steps: list[Decimal] | None = None,
) -> SensitivityMatrix:
    """Net flip profit for each combination of ARV and rehab change (percent)."""
    arv_steps = arv_steps or SENSITIVITY_STEPS
    rehab_steps = rehab_steps or SENSITIVITY_STEPS
    values = []
    for a in arv_steps:
        row = []
        for r in rehab_steps:
            adjusted, adjusted_arv = apply_adjustment(
                inputs, arv, ScenarioAdjustment(name="sensitivity", arv_pct=a, rehab_pct=r)
            )
            row.append(analyze_flip(adjusted, adjusted_arv).net_profit)
        values.append(row)
    return SensitivityMatrix(arv_steps=list(arv_steps), rehab_steps=list(rehab_steps), values=values)
