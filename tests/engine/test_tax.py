from decimal import Decimal

from reitools.engine.rental import analyze_rental
from reitools.engine.tax import (
    annual_depreciation,
    depreciable_basis,
    first_year_interest,
    sale_tax,
    tax_benefits,
)

CENT = Decimal("0.01")


class TestDepreciation:
    def test_basis_excludes_land(self, canonical_inputs):
        """$550K purchase + rehab, 20% land."""
        assert depreciable_basis(canonical_inputs) == Decimal("440000")

    def test_straight_line(self, canonical_inputs):
        assert annual_depreciation(canonical_inputs) == Decimal("16000")


class TestTaxBenefits:
    def test_deductions(self, canonical_inputs):
        rental = analyze_rental(canonical_inputs)
        benefits = tax_benefits(canonical_inputs, rental)
        expected = rental.operating_expenses + first_year_interest(canonical_inputs) + Decimal("16000")
        assert benefits.total_deductions == expected

    def test_paper_loss_creates_savings(self, canonical_inputs):
        """Depreciation and interest push the canonical rental to a paper loss."""
        rental = analyze_rental(canonical_inputs)
        benefits = tax_benefits(canonical_inputs, rental)
        assert benefits.taxable_income < 0
        assert benefits.tax_savings == -benefits.taxable_income * Decimal("0.24")
        assert benefits.after_tax_cash_flow == rental.annual_cash_flow + benefits.tax_savings

    def test_first_year_interest(self, canonical_inputs):
        interest = first_year_interest(canonical_inputs)
        # Slightly under 12 months of the initial $2,333.33
        assert Decimal("27500") < interest < Decimal("28000")


class TestSaleTax:
    def test_recapture_and_capital_gain(self, canonical_inputs):
        """$700K sale after 5 years: $80K recapture, $108K long-term gain."""
        tax = sale_tax(canonical_inputs, Decimal("700000"), 5)
        assert tax.gain == Decimal("188000")
        assert tax.depreciation_recapture == Decimal("80000")
        assert tax.recapture_tax == Decimal("20000")
        assert tax.capital_gain == Decimal("108000")
        assert tax.capital_gains_tax == Decimal("16200")
        assert tax.total_tax == Decimal("36200")

    def test_short_hold_taxed_at_bracket(self, canonical_inputs):
        tax = sale_tax(canonical_inputs, Decimal("700000"), 0)
        assert tax.depreciation_recapture == Decimal("0")
        assert tax.capital_gains_tax == Decimal("108000") * Decimal("0.24")

    def test_loss_owes_nothing(self, canonical_inputs):
        tax = sale_tax(canonical_inputs, Decimal("500000"), 1)
        assert tax.gain < 0
        assert tax.total_tax == Decimal("0")
