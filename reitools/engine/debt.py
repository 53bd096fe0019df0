"""Amortization schedules and loan structure comparison.

Pure functions: Decimal in, dataclass out. No I/O. Values are left
unrounded; callers quantize for display.
"""

from dataclasses import dataclass
from decimal import Decimal

from reitools.models.results import LoanScenario

ZERO = Decimal("0")


@dataclass(frozen=True)
class AmortizationPayment:
    period: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal


@dataclass(frozen=True)
class AmortizationSchedule:
    payments: list[AmortizationPayment]
    monthly_payment: Decimal
    total_interest: Decimal
    total_principal: Decimal


def monthly_payment(principal: Decimal, annual_rate: Decimal, term_years: int) -> Decimal:
    """Calculate fixed monthly mortgage payment."""
    if principal <= 0 or term_years <= 0:
        return ZERO
    n = term_years * 12
    if annual_rate <= 0:
        return principal / n

    r = annual_rate / 12
    # M = P * [r(1+r)^n] / [(1+r)^n - 1]
    factor = (1 + r) ** n
    return principal * (r * factor) / (factor - 1)


def interest_only_payment(principal: Decimal, annual_rate: Decimal) -> Decimal:
    if principal <= 0 or annual_rate <= 0:
        return ZERO
    return principal * annual_rate / 12


def amortization_schedule(
    principal: Decimal,
    annual_rate: Decimal,
    term_years: int,
    hold_years: int | None = None,
    interest_only_years: int = 0,
) -> AmortizationSchedule:
    """Generate full or partial amortization schedule.

    Args:
        principal: Loan amount
        annual_rate: Annual interest rate (e.g. 0.07 for 7%)
        term_years: Loan term in years
        hold_years: If provided, only generate schedule for this many years
        interest_only_years: Leading years of interest-only payments; the
            balance then amortizes over the remaining term
    """
    r = annual_rate / 12 if annual_rate > 0 else ZERO
    io_periods = min(interest_only_years, term_years) * 12
    amortizing_years = term_years - io_periods // 12
    io_pmt = interest_only_payment(principal, annual_rate)
    pmt = monthly_payment(principal, annual_rate, amortizing_years)
    n_periods = min(hold_years or term_years, term_years) * 12
    last_period = term_years * 12

    payments: list[AmortizationPayment] = []
    balance = principal
    total_interest = ZERO
    total_principal = ZERO

    for period in range(1, n_periods + 1):
        if balance <= 0:
            break
        interest = balance * r
        if period <= io_periods:
            principal_paid = ZERO
        elif period == last_period:
            principal_paid = balance
        else:
            principal_paid = min(pmt - interest, balance)

        balance -= principal_paid
        total_interest += interest
        total_principal += principal_paid

        payments.append(AmortizationPayment(
            period=period,
            payment=interest + principal_paid,
            principal=principal_paid,
            interest=interest,
            balance=max(balance, ZERO),
        ))

    return AmortizationSchedule(
        payments=payments,
        monthly_payment=io_pmt if io_periods else pmt,
        total_interest=total_interest,
        total_principal=total_principal,
    )


def yearly_debt_summary(schedule: AmortizationSchedule) -> list[dict[str, Decimal]]:
    """Aggregate amortization schedule by year.

    Returns list of dicts with keys: year, principal, interest, debt_service, ending_balance
    """
    yearly: list[dict[str, Decimal]] = []
    year_principal = ZERO
    year_interest = ZERO
    year_debt_service = ZERO

    for p in schedule.payments:
        year_principal += p.principal
        year_interest += p.interest
        year_debt_service += p.payment

        if p.period % 12 == 0 or p.period == len(schedule.payments):
            yearly.append({
                "year": Decimal((p.period - 1) // 12 + 1),
                "principal": year_principal,
                "interest": year_interest,
                "debt_service": year_debt_service,
                "ending_balance": p.balance,
            })
            year_principal = ZERO
            year_interest = ZERO
            year_debt_service = ZERO

    return yearly


def compare_loans(
    principal: Decimal,
    base_rate: Decimal,
    monthly_noi: Decimal | None = None,
) -> list[LoanScenario]:
    """Side-by-side financing options for the same loan amount.

    30-year fixed, 15-year fixed at half a point lower, 10-year interest-only
    on a 30-year term, and a 5/1 ARM priced half a point lower for its fixed
    period. Monthly cash flow is included when the property's monthly NOI is given.
    """
    half_point = Decimal("0.005")
    options = [
        ("30-Year Fixed", 30, base_rate, 0),
        ("15-Year Fixed", 15, max(base_rate - half_point, ZERO), 0),
        ("Interest-Only (10yr)", 30, base_rate, 10),
        ("5/1 ARM", 30, max(base_rate - half_point, ZERO), 0),
    ]
    scenarios: list[LoanScenario] = []
    for name, term, rate, io_years in options:
        schedule = amortization_schedule(principal, rate, term, interest_only_years=io_years)
        payment = schedule.monthly_payment
        scenarios.append(LoanScenario(
            name=name,
            term_years=term,
            annual_rate=rate,
            interest_only_years=io_years,
            monthly_payment=payment,
            total_interest=schedule.total_interest,
            monthly_cash_flow=monthly_noi - payment if monthly_noi is not None else None,
        ))
    return scenarios
