from dataclasses import dataclass, fields, replace
from decimal import Decimal

ZERO = Decimal("0")
ONE = Decimal("1")

# Fields carried as fractions in [0, 1]
_RATE_FIELDS = (
    "down_payment_pct",
    "interest_rate",
    "heloc_rate",
    "closing_cost_rate",
    "contingency_rate",
    "commission_rate",
    "seller_closing_rate",
    "property_tax_rate",
    "vacancy_rate",
    "maintenance_rate",
    "management_rate",
    "land_value_pct",
    "tax_bracket",
)


@dataclass(frozen=True)
class AnalysisInputs:
    """Financing and expense assumptions supplied with a property query.

    Percentages are fractions (0.07 for 7%). Monthly amounts are noted as such.
    """
    # Purchase
    purchase_price: Decimal
    rehab_cost: Decimal = ZERO
    closing_cost_rate: Decimal = Decimal("0.02")
    contingency_rate: Decimal = Decimal("0.10")

    # Financing
    down_payment_pct: Decimal = Decimal("0.20")
    interest_rate: Decimal = Decimal("0.07")  # Annual
    loan_term_years: int = 30
    cash_investment: Decimal = ZERO  # Cash outside the down payment
    heloc_amount: Decimal = ZERO
    heloc_rate: Decimal = Decimal("0.07")

    # Flip
    months_to_flip: int = 6
    commission_rate: Decimal = Decimal("0.05")
    seller_closing_rate: Decimal = Decimal("0.01")

    # Carrying costs
    property_tax_rate: Decimal = Decimal("0.0125")  # Annual, of purchase price
    property_tax: Decimal | None = None  # Annual override
    insurance_monthly: Decimal | None = None  # Override, defaults to $100/mo
    utilities_monthly: Decimal = ZERO
    hoa_monthly: Decimal = ZERO

    # Rental
    monthly_rent: Decimal = ZERO
    vacancy_rate: Decimal = Decimal("0.06")
    maintenance_rate: Decimal = Decimal("0.01")  # Annual, of property value
    management_enabled: bool = False
    management_rate: Decimal = Decimal("0.08")  # Of EGI

    # BRRRR refinance (None skips the refinance analysis)
    refinance_ltv: Decimal | None = None
    refinance_rate: Decimal | None = None

    # Subject property, used to scale comps
    sqft: int = 0
    bedrooms: int = 0
    bathrooms: Decimal = ZERO

    # Tax
    land_value_pct: Decimal = Decimal("0.20")
    tax_bracket: Decimal = Decimal("0.24")

    @property
    def down_payment(self) -> Decimal:
        return self.purchase_price * self.down_payment_pct

    @property
    def loan_amount(self) -> Decimal:
        return self.purchase_price - self.down_payment

    @property
    def annual_property_tax(self) -> Decimal:
        if self.property_tax is not None:
            return self.property_tax
        return self.purchase_price * self.property_tax_rate

    @property
    def monthly_insurance(self) -> Decimal:
        if self.insurance_monthly is not None:
            return self.insurance_monthly
        return Decimal("100")

    @property
    def selling_rate(self) -> Decimal:
        return self.commission_rate + self.seller_closing_rate

    def clamped(self) -> "AnalysisInputs":
        """Return a copy with amounts floored at zero and rates held in [0, 1]."""
        changes: dict = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or value is None:
                continue
            if f.name in _RATE_FIELDS or f.name in ("refinance_ltv", "refinance_rate"):
                bounded = min(max(value, ZERO), ONE)
            elif isinstance(value, int):
                bounded = max(value, 0)
            else:
                bounded = max(value, ZERO)
            if bounded != value:
                changes[f.name] = bounded
        if self.loan_term_years < 1:
            changes["loan_term_years"] = 1
        if self.months_to_flip < 1:
            changes["months_to_flip"] = 1
        return replace(self, **changes) if changes else self
