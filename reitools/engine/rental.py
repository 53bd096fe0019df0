"""Buy-and-hold rental analysis: NOI, cap rate, CoC return, DSCR, BRRRR.

Pure functions: Decimal in, dataclass out. No I/O.
"""

from decimal import Decimal

from reitools.engine.debt import amortization_schedule, monthly_payment, yearly_debt_summary
from reitools.engine.irr import compute_equity_multiple, compute_irr, compute_npv
from reitools.engine.tax import sale_tax
from reitools.models.assumptions import AnalysisInputs
from reitools.models.results import (
    BRRRRAnalysis,
    BreakEven,
    HoldMetrics,
    RentalAnalysis,
    YearProjection,
)

ZERO = Decimal("0")

# Lenders price refinanced rentals as slightly riskier to insure
BRRRR_INSURANCE_FACTOR = Decimal("1.1")


def debt_service_coverage(noi: Decimal, annual_debt_service: Decimal) -> Decimal | None:
    """DSCR = NOI / annual debt service; None without debt."""
    if annual_debt_service <= 0:
        return None
    return noi / annual_debt_service


def dscr_quality(dscr: Decimal | None) -> str:
    if dscr is None:
        return "no debt"
    if dscr >= Decimal("1.25"):
        return "excellent"
    if dscr >= Decimal("1.15"):
        return "good"
    if dscr >= Decimal("1.0"):
        return "acceptable"
    return "poor"


def cash_deployed(inputs: AnalysisInputs) -> Decimal:
    """Down payment + rehab with contingency + direct cash investment."""
    total_rehab = inputs.rehab_cost * (1 + inputs.contingency_rate)
    return inputs.down_payment + total_rehab + inputs.cash_investment


def operating_expenses(
    inputs: AnalysisInputs,
    property_value: Decimal,
    egi: Decimal,
    insurance_factor: Decimal = Decimal("1"),
) -> dict[str, Decimal]:
    """Itemized annual operating expenses."""
    if inputs.property_tax is not None:
        tax = inputs.property_tax
    else:
        tax = property_value * inputs.property_tax_rate
    return {
        "property_tax": tax,
        "insurance": inputs.monthly_insurance * 12 * insurance_factor,
        "maintenance": property_value * inputs.maintenance_rate,
        "management": egi * inputs.management_rate if inputs.management_enabled else ZERO,
        "hoa": inputs.hoa_monthly * 12,
        "utilities": inputs.utilities_monthly * 12,
    }


def analyze_rental(
    inputs: AnalysisInputs,
    property_value: Decimal | None = None,
    loan_amount: Decimal | None = None,
    annual_rate: Decimal | None = None,
    invested: Decimal | None = None,
    insurance_factor: Decimal = Decimal("1"),
) -> RentalAnalysis:
    """As-is rental economics.

    Defaults value the property at purchase price with the purchase loan.
    The BRRRR path overrides value, loan and rate with post-refinance terms.
    """
    value = property_value if property_value is not None else inputs.purchase_price
    loan = loan_amount if loan_amount is not None else inputs.loan_amount
    rate = annual_rate if annual_rate is not None else inputs.interest_rate
    invested = invested if invested is not None else cash_deployed(inputs)

    gross = inputs.monthly_rent * 12
    vacancy = gross * inputs.vacancy_rate
    egi = gross - vacancy
    expenses = operating_expenses(inputs, value, egi, insurance_factor)
    opex = sum(expenses.values(), ZERO)
    noi = egi - opex

    monthly_ds = monthly_payment(loan, rate, inputs.loan_term_years)
    annual_ds = monthly_ds * 12
    annual_cf = noi - annual_ds
    dscr = debt_service_coverage(noi, annual_ds)

    return RentalAnalysis(
        property_value=value,
        monthly_rent=inputs.monthly_rent,
        gross_income=gross,
        vacancy_loss=vacancy,
        effective_gross_income=egi,
        expenses=expenses,
        operating_expenses=opex,
        noi=noi,
        loan_amount=loan,
        monthly_debt_service=monthly_ds,
        annual_debt_service=annual_ds,
        annual_cash_flow=annual_cf,
        monthly_cash_flow=annual_cf / 12,
        cap_rate=noi / value if value > 0 else ZERO,
        cash_deployed=invested,
        cash_on_cash=annual_cf / invested if invested > 0 else None,
        dscr=dscr,
        dscr_quality=dscr_quality(dscr),
        expense_ratio=opex / egi if egi > 0 else ZERO,
    )


def analyze_brrrr(inputs: AnalysisInputs, arv: Decimal) -> BRRRRAnalysis:
    """Rent after a cash-out refinance at ARV.

    The refinance loan is ARV x refinance LTV (defaulting to the purchase
    LTV). Expenses are re-based on ARV and insurance is loaded 10%.
    """
    ltv = inputs.refinance_ltv if inputs.refinance_ltv is not None else 1 - inputs.down_payment_pct
    rate = inputs.refinance_rate if inputs.refinance_rate is not None else inputs.interest_rate
    refinance_loan = arv * ltv
    original_cash = cash_deployed(inputs)

    rental = analyze_rental(
        inputs,
        property_value=arv,
        loan_amount=refinance_loan,
        annual_rate=rate,
        invested=original_cash,
        insurance_factor=BRRRR_INSURANCE_FACTOR,
    )
    cash_out = refinance_loan - inputs.loan_amount
    cash_left = original_cash - cash_out
    coc_original = rental.cash_on_cash

    return BRRRRAnalysis(
        rental=rental,
        refinance_loan=refinance_loan,
        cash_out=cash_out,
        cash_left_in_deal=cash_left,
        cash_on_cash_original=coc_original,
        cash_on_cash_remaining=rental.annual_cash_flow / cash_left if cash_left > 0 else None,
        return_on_time=(
            coc_original / inputs.months_to_flip
            if coc_original is not None and inputs.months_to_flip > 0
            else None
        ),
    )


def break_even(inputs: AnalysisInputs) -> BreakEven:
    """Rent needed to cover debt service and fixed costs.

    With management, vacancy and the management fee come off the top, so
    fixed costs are divided by (1 - management - vacancy).
    """
    value = inputs.purchase_price + inputs.rehab_cost
    if inputs.property_tax is not None:
        tax = inputs.property_tax
    else:
        tax = value * inputs.property_tax_rate
    fixed = (
        monthly_payment(inputs.loan_amount, inputs.interest_rate, inputs.loan_term_years)
        + tax / 12
        + inputs.monthly_insurance
        + value * inputs.maintenance_rate / 12
        + inputs.hoa_monthly
        + inputs.utilities_monthly
    )

    off_the_top = inputs.management_rate + inputs.vacancy_rate
    with_mgmt = fixed / (1 - off_the_top) if off_the_top < 1 else fixed
    occupancy = fixed / inputs.monthly_rent if inputs.monthly_rent > 0 else None
    return BreakEven(
        rent_without_management=fixed,
        rent_with_management=with_mgmt,
        occupancy=occupancy,
    )


def project_rental(
    inputs: AnalysisInputs,
    years: int = 10,
    rent_growth: Decimal = Decimal("0.03"),
    expense_growth: Decimal = Decimal("0.025"),
    appreciation: Decimal = Decimal("0.04"),
) -> list[YearProjection]:
    """Year-by-year hold projection on the purchase loan."""
    base = analyze_rental(inputs)
    schedule = amortization_schedule(
        inputs.loan_amount, inputs.interest_rate, inputs.loan_term_years, hold_years=years
    )
    debt_by_year = {int(y["year"]): y for y in yearly_debt_summary(schedule)}
    start_value = inputs.purchase_price + inputs.rehab_cost

    projections: list[YearProjection] = []
    for year in range(1, years + 1):
        egi = base.effective_gross_income * (1 + rent_growth) ** (year - 1)
        opex = base.operating_expenses * (1 + expense_growth) ** (year - 1)
        noi = egi - opex
        debt = debt_by_year.get(year)
        debt_service = debt["debt_service"] if debt else ZERO
        balance = debt["ending_balance"] if debt else ZERO
        value = start_value * (1 + appreciation) ** year
        projections.append(YearProjection(
            year=year,
            gross_rent=base.gross_income * (1 + rent_growth) ** (year - 1),
            operating_expenses=opex,
            noi=noi,
            debt_service=debt_service,
            cash_flow=noi - debt_service,
            property_value=value,
            loan_balance=balance,
            equity=value - balance,
        ))
    return projections


def hold_cash_flows(inputs: AnalysisInputs, projections: list[YearProjection]) -> list[Decimal]:
    """Initial outlay, yearly cash flows, and net sale proceeds in the final year."""
    flows = [-cash_deployed(inputs)]
    flows.extend(p.cash_flow for p in projections)
    if projections:
        last = projections[-1]
        proceeds = last.property_value * (1 - inputs.selling_rate) - last.loan_balance
        flows[-1] += proceeds
    return flows


def rental_irr(inputs: AnalysisInputs, years: int = 10) -> Decimal | None:
    """IRR of a hold-and-sell over `years`; None when undefined."""
    return compute_irr(hold_cash_flows(inputs, project_rental(inputs, years)))


def hold_metrics(
    inputs: AnalysisInputs,
    years: int = 10,
    discount_rate: Decimal = Decimal("0.10"),
) -> HoldMetrics:
    """IRR, NPV and equity multiple of buying, holding `years`, then selling.

    The sale in the final year is taxed on recapture and capital gains; the
    tax is reported alongside but not deducted from the IRR cash flows.
    """
    projections = project_rental(inputs, years)
    flows = hold_cash_flows(inputs, projections)
    invested = -flows[0]
    if projections:
        final_value = projections[-1].property_value
    else:
        final_value = inputs.purchase_price + inputs.rehab_cost
    return HoldMetrics(
        years=years,
        discount_rate=discount_rate,
        irr=compute_irr(flows),
        npv=compute_npv(flows, discount_rate),
        equity_multiple=compute_equity_multiple(sum(flows[1:], ZERO), invested),
        total_cash_flow=sum((p.cash_flow for p in projections), ZERO),
        final_value=final_value,
        sale_tax=sale_tax(inputs, final_value, years),
    )
