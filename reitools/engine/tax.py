"""Rental tax effects: straight-line depreciation, annual savings, and tax on sale.

IRC 168 27.5-year residential recovery, IRC 1250 recapture on sale.

Pure functions. No I/O.
"""

from decimal import Decimal

from reitools.engine.debt import amortization_schedule
from reitools.models.assumptions import AnalysisInputs
from reitools.models.results import RentalAnalysis, SaleTax, TaxBenefits

ZERO = Decimal("0")

RESIDENTIAL_LIFE_YEARS = Decimal("27.5")
RECAPTURE_RATE = Decimal("0.25")  # Unrecaptured Sec 1250 gain
LTCG_RATE = Decimal("0.15")


def depreciable_basis(inputs: AnalysisInputs) -> Decimal:
    """Building portion of purchase + rehab. Land is not depreciable."""
    return (inputs.purchase_price + inputs.rehab_cost) * (1 - inputs.land_value_pct)


def annual_depreciation(inputs: AnalysisInputs) -> Decimal:
    return depreciable_basis(inputs) / RESIDENTIAL_LIFE_YEARS


def first_year_interest(inputs: AnalysisInputs) -> Decimal:
    schedule = amortization_schedule(
        inputs.loan_amount, inputs.interest_rate, inputs.loan_term_years, hold_years=1
    )
    return schedule.total_interest


def tax_benefits(inputs: AnalysisInputs, rental: RentalAnalysis) -> TaxBenefits:
    """Year-one tax position of the rental.

    Deductions are operating expenses, mortgage interest and depreciation.
    Savings are any resulting paper loss (or reduced taxable income) times
    the investor's bracket.
    """
    depreciation = annual_depreciation(inputs)
    interest = first_year_interest(inputs)
    deductions = rental.operating_expenses + interest + depreciation
    taxable = rental.effective_gross_income - deductions
    if taxable < 0:
        savings = -taxable * inputs.tax_bracket
        tax_due = ZERO
    else:
        savings = ZERO
        tax_due = taxable * inputs.tax_bracket
    return TaxBenefits(
        annual_depreciation=depreciation,
        first_year_interest=interest,
        total_deductions=deductions,
        taxable_income=taxable,
        tax_savings=savings,
        after_tax_cash_flow=rental.annual_cash_flow + savings - tax_due,
    )


def sale_tax(
    inputs: AnalysisInputs,
    sale_price: Decimal,
    years_held: int,
) -> SaleTax:
    """Recapture and capital gains tax on selling the rental.

    Depreciation taken is taxed at the recapture rate; the remaining gain
    at the long-term rate, or at the ordinary bracket inside one year.
    """
    basis = inputs.purchase_price + inputs.rehab_cost
    depreciation_taken = annual_depreciation(inputs) * years_held
    adjusted_basis = basis - depreciation_taken
    net_sale = sale_price * (1 - inputs.selling_rate)
    gain = net_sale - adjusted_basis

    if gain <= 0:
        return SaleTax(
            gain=gain,
            depreciation_recapture=ZERO,
            recapture_tax=ZERO,
            capital_gain=ZERO,
            capital_gains_tax=ZERO,
            total_tax=ZERO,
        )

    recapture = min(depreciation_taken, gain)
    capital_gain = gain - recapture
    rate = LTCG_RATE if years_held >= 1 else inputs.tax_bracket
    recapture_tax = recapture * RECAPTURE_RATE
    capital_gains_tax = capital_gain * rate
    return SaleTax(
        gain=gain,
        depreciation_recapture=recapture,
        recapture_tax=recapture_tax,
        capital_gain=capital_gain,
        capital_gains_tax=capital_gains_tax,
        total_tax=recapture_tax + capital_gains_tax,
    )
