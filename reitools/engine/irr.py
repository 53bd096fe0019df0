"""IRR and NPV over annual cash flow series.

Pure functions. No I/O.
"""

import logging
import math
from decimal import Decimal

from scipy.optimize import newton

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 100
TOLERANCE = 1e-5
INITIAL_GUESS = 0.1
# Roots outside this band are numerical artifacts, not returns
MIN_IRR = -1.0
MAX_IRR = 10.0


def compute_irr(cash_flows: list[Decimal], guess: float = INITIAL_GUESS) -> Decimal | None:
    """Compute IRR from a vector of annual cash flows.

    cash_flows[0] should be negative (initial investment).
    cash_flows[-1] should include sale proceeds.

    Uses Newton-Raphson on the NPV function, bounded to MAX_ITERATIONS.
    Returns None when IRR is undefined: no sign change in the series, a
    flat derivative, divergence, or a root outside [-100%, 1000%].
    """
    if len(cash_flows) < 2:
        return None
    cf = [float(c) for c in cash_flows]
    if not (any(c < 0 for c in cf) and any(c > 0 for c in cf)):
        return None

    def npv(rate: float) -> float:
        return sum(c / (1 + rate) ** t for t, c in enumerate(cf))

    def d_npv(rate: float) -> float:
        return sum(-t * c / (1 + rate) ** (t + 1) for t, c in enumerate(cf))

    try:
        irr = newton(npv, guess, fprime=d_npv, tol=TOLERANCE, maxiter=MAX_ITERATIONS)
    except (RuntimeError, ZeroDivisionError, OverflowError) as e:
        logger.debug("IRR did not converge: %s", e)
        return None

    irr = float(irr)
    if not math.isfinite(irr) or irr <= MIN_IRR or irr > MAX_IRR:
        return None
    return Decimal(str(irr))


def compute_npv(cash_flows: list[Decimal], discount_rate: Decimal) -> Decimal:
    """Net present value with cash_flows[0] at t=0."""
    return sum(
        (cf / (1 + discount_rate) ** t for t, cf in enumerate(cash_flows)),
        Decimal("0"),
    )


def compute_equity_multiple(
    total_cash_returned: Decimal, total_cash_invested: Decimal
) -> Decimal:
    """Equity multiple = total cash out / total cash in."""
    if total_cash_invested == 0:
        return Decimal("0")
    return total_cash_returned / total_cash_invested
