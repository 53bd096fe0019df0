"""Monte-Carlo risk simulation over flip and rental outcomes.

Each trial draws independent uniform perturbations of ARV, rehab, rent,
interest rate and timeline, applies them through the scenario path and
records the resulting metrics. The batch is bounded by a trial cap and a
wall-clock deadline; a short batch is reported as truncated.
"""

import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal

import numpy as np

from reitools.config import settings
from reitools.engine.flip import analyze_flip
from reitools.engine.rental import analyze_rental
from reitools.engine.scenario import apply_adjustment
from reitools.models.assumptions import AnalysisInputs
from reitools.models.results import MetricStats, MonteCarloResult, ScenarioAdjustment

logger = logging.getLogger(__name__)

METRICS = ("net_profit", "roi", "monthly_cash_flow", "cash_on_cash", "cap_rate", "noi")


def draw_adjustments(
    rng: np.random.Generator,
    n: int,
    ranges: Mapping[str, tuple[float, float]],
) -> list[ScenarioAdjustment]:
    """n independent adjustments. Timeline deltas are whole months."""
    arv = rng.uniform(*ranges["arv_pct"], size=n)
    rehab = rng.uniform(*ranges["rehab_pct"], size=n)
    rent = rng.uniform(*ranges["rent_pct"], size=n)
    rate = rng.uniform(*ranges["rate_delta"], size=n)
    low, high = ranges["months_delta"]
    months = rng.integers(int(low), int(high), size=n, endpoint=True)
    return [
        ScenarioAdjustment(
            name=f"trial-{i}",
            arv_pct=Decimal(str(arv[i])),
            rehab_pct=Decimal(str(rehab[i])),
            rent_pct=Decimal(str(rent[i])),
            rate_delta=Decimal(str(rate[i])),
            months_delta=int(months[i]),
        )
        for i in range(n)
    ]


def trial_metrics(
    inputs: AnalysisInputs, arv: Decimal, adjustment: ScenarioAdjustment
) -> dict[str, Decimal | None]:
    adjusted, adjusted_arv = apply_adjustment(inputs, arv, adjustment)
    flip = analyze_flip(adjusted, adjusted_arv)
    rental = analyze_rental(adjusted)
    return {
        "net_profit": flip.net_profit,
        "roi": flip.roi,
        "monthly_cash_flow": rental.monthly_cash_flow,
        "cash_on_cash": rental.cash_on_cash,
        "cap_rate": rental.cap_rate,
        "noi": rental.noi,
    }


def summarize(values: list[float]) -> MetricStats:
    arr = np.asarray(values, dtype=float)
    p10, median, p90 = np.percentile(arr, [10, 50, 90])
    return MetricStats(
        mean=float(arr.mean()),
        median=float(median),
        p10=float(p10),
        p90=float(p90),
        min=float(arr.min()),
        max=float(arr.max()),
        std=float(arr.std()),
    )


def run_monte_carlo(
    inputs: AnalysisInputs,
    arv: Decimal,
    trials: int | None = None,
    seed: int | None = None,
    ranges: Mapping[str, tuple[float, float]] | None = None,
    max_trials: int | None = None,
    deadline_seconds: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> MonteCarloResult:
    """Simulate `trials` perturbed outcomes.

    Trials beyond `max_trials` are never started, and the loop stops once
    `deadline_seconds` have elapsed. Either condition leaves
    iterations < requested and sets truncated. A trial that raises is
    skipped and counted in failed_trials.
    """
    requested = trials if trials is not None else settings.monte_carlo_trials
    max_trials = max_trials if max_trials is not None else settings.monte_carlo_max_trials
    deadline = (
        deadline_seconds if deadline_seconds is not None else settings.monte_carlo_deadline_seconds
    )
    ranges = {**settings.monte_carlo_ranges, **(ranges or {})}

    planned = max(0, min(requested, max_trials))
    if planned < requested:
        logger.warning("Monte-Carlo capped at %s of %s requested trials", planned, requested)

    rng = np.random.default_rng(seed)
    adjustments = draw_adjustments(rng, planned, ranges)
    samples: dict[str, list[float]] = {m: [] for m in METRICS}

    started = clock()
    iterations = 0
    failed = 0
    for adjustment in adjustments:
        if clock() - started > deadline:
            logger.warning(
                "Monte-Carlo deadline of %ss reached after %s trials", deadline, iterations
            )
            break
        iterations += 1
        try:
            metrics = trial_metrics(inputs, arv, adjustment)
        except (ArithmeticError, ValueError) as e:
            failed += 1
            logger.debug("Monte-Carlo trial %s failed: %s", adjustment.name, e)
            continue
        for name, value in metrics.items():
            if value is not None:
                samples[name].append(float(value))

    profits = samples["net_profit"]
    return MonteCarloResult(
        requested=requested,
        iterations=iterations,
        failed_trials=failed,
        truncated=iterations < requested,
        seed=seed,
        stats={name: summarize(values) for name, values in samples.items() if values},
        probability_of_loss=(
            sum(1 for p in profits if p < 0) / len(profits) if profits else None
        ),
    )
