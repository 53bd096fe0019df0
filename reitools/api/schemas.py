"""Pydantic schemas for API request/response models.

Request percentages are in percent units (7 for 7%) and are converted to
fractions before reaching the engine.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from reitools.models.assumptions import AnalysisInputs
from reitools.models.property import PropertyQuery
from reitools.models.results import (
    AlertPriority,
    AlertType,
    Recommendation,
    ScenarioAdjustment,
)
from reitools.models.usage import QuotaStatus

HUNDRED = Decimal("100")


def _pct(value: Decimal | None) -> Decimal | None:
    return value / HUNDRED if value is not None else None


# ---- Request schemas ----

class InputsRequest(BaseModel):
    purchase_price: Decimal = Field(..., gt=0)
    rehab_cost: Decimal = Field(Decimal("0"), ge=0)
    closing_cost_pct: Decimal = Field(Decimal("2"), ge=0, le=100)
    contingency_pct: Decimal = Field(Decimal("10"), ge=0, le=100)

    down_payment_pct: Decimal = Field(Decimal("20"), ge=0, le=100)
    interest_rate_pct: Decimal = Field(Decimal("7"), ge=0, le=100)
    loan_term_years: int = Field(30, ge=1, le=50)
    cash_investment: Decimal = Field(Decimal("0"), ge=0)
    heloc_amount: Decimal = Field(Decimal("0"), ge=0)
    heloc_rate_pct: Decimal = Field(Decimal("7"), ge=0, le=100)

    months_to_flip: int = Field(6, ge=1, le=60)
    commission_pct: Decimal = Field(Decimal("5"), ge=0, le=100)
    seller_closing_pct: Decimal = Field(Decimal("1"), ge=0, le=100)

    property_tax_rate_pct: Decimal = Field(Decimal("1.25"), ge=0, le=100)
    property_tax: Decimal | None = Field(None, ge=0, description="Annual tax override")
    insurance_monthly: Decimal | None = Field(None, ge=0)
    utilities_monthly: Decimal = Field(Decimal("0"), ge=0)
    hoa_monthly: Decimal = Field(Decimal("0"), ge=0)

    monthly_rent: Decimal = Field(Decimal("0"), ge=0)
    vacancy_pct: Decimal = Field(Decimal("6"), ge=0, le=100)
    maintenance_pct: Decimal = Field(Decimal("1"), ge=0, le=100)
    management_enabled: bool = False
    management_pct: Decimal = Field(Decimal("8"), ge=0, le=100)

    refinance_ltv_pct: Decimal | None = Field(None, ge=0, le=100)
    refinance_rate_pct: Decimal | None = Field(None, ge=0, le=100)

    sqft: int = Field(0, ge=0)
    bedrooms: int = Field(0, ge=0)
    bathrooms: Decimal = Field(Decimal("0"), ge=0)

    land_value_pct: Decimal = Field(Decimal("20"), ge=0, le=100)
    tax_bracket_pct: Decimal = Field(Decimal("24"), ge=0, le=100)

    def to_inputs(self) -> AnalysisInputs:
        return AnalysisInputs(
            purchase_price=self.purchase_price,
            rehab_cost=self.rehab_cost,
            closing_cost_rate=_pct(self.closing_cost_pct),
            contingency_rate=_pct(self.contingency_pct),
            down_payment_pct=_pct(self.down_payment_pct),
            interest_rate=_pct(self.interest_rate_pct),
            loan_term_years=self.loan_term_years,
            cash_investment=self.cash_investment,
            heloc_amount=self.heloc_amount,
            heloc_rate=_pct(self.heloc_rate_pct),
            months_to_flip=self.months_to_flip,
            commission_rate=_pct(self.commission_pct),
            seller_closing_rate=_pct(self.seller_closing_pct),
            property_tax_rate=_pct(self.property_tax_rate_pct),
            property_tax=self.property_tax,
            insurance_monthly=self.insurance_monthly,
            utilities_monthly=self.utilities_monthly,
            hoa_monthly=self.hoa_monthly,
            monthly_rent=self.monthly_rent,
            vacancy_rate=_pct(self.vacancy_pct),
            maintenance_rate=_pct(self.maintenance_pct),
            management_enabled=self.management_enabled,
            management_rate=_pct(self.management_pct),
            refinance_ltv=_pct(self.refinance_ltv_pct),
            refinance_rate=_pct(self.refinance_rate_pct),
            sqft=self.sqft,
            bedrooms=self.bedrooms,
            bathrooms=self.bathrooms,
            land_value_pct=_pct(self.land_value_pct),
            tax_bracket=_pct(self.tax_bracket_pct),
        )


class AnalyzeRequest(BaseModel):
    address: str = Field(..., min_length=1, description="Street address")
    city: str = ""
    state: str = ""
    zip_code: str = ""
    inputs: InputsRequest

    force_refresh: bool = False
    external_estimates: dict[str, Decimal | None] | None = Field(
        None, description="Automated valuations by source; omit to fetch them"
    )
    monte_carlo_trials: int = Field(0, ge=0, description="0 skips the simulation")
    seed: int | None = None

    def to_query(self) -> PropertyQuery:
        return PropertyQuery(
            address=self.address, city=self.city, state=self.state, zip_code=self.zip_code
        )


class AdjustmentRequest(BaseModel):
    name: str = "custom"
    arv_pct: Decimal = Decimal("0")
    rehab_pct: Decimal = Decimal("0")
    rent_pct: Decimal = Decimal("0")
    rate_delta: Decimal = Field(Decimal("0"), description="Percentage points")
    months_delta: int = 0

    def to_adjustment(self) -> ScenarioAdjustment:
        return ScenarioAdjustment(**self.model_dump())


class ScenarioRequest(BaseModel):
    inputs: InputsRequest
    arv: Decimal = Field(..., gt=0)
    adjustments: list[AdjustmentRequest] = Field(default_factory=list)


class MonteCarloRequest(BaseModel):
    inputs: InputsRequest
    arv: Decimal = Field(..., gt=0)
    trials: int | None = Field(None, ge=1)
    seed: int | None = None


# ---- Response schemas ----

class SourceWeightResponse(BaseModel):
    model_config = {"from_attributes": True}

    source: str
    value: Decimal
    weight: Decimal


class ARVResponse(BaseModel):
    model_config = {"from_attributes": True}

    arv: Decimal
    confidence: Decimal
    sources: list[SourceWeightResponse]
    confidence_interval: tuple[Decimal, Decimal]
    low_confidence: bool
    warnings: list[str]


class FlipResponse(BaseModel):
    model_config = {"from_attributes": True}

    purchase_price: Decimal
    total_rehab: Decimal
    acquisition_cost: Decimal
    arv: Decimal
    months: int
    holding_costs: Decimal
    selling_costs: Decimal
    total_cost: Decimal
    net_profit: Decimal
    cash_deployed: Decimal
    roi: Decimal
    max_allowable_offer: Decimal


class RentalResponse(BaseModel):
    model_config = {"from_attributes": True}

    property_value: Decimal
    monthly_rent: Decimal
    effective_gross_income: Decimal
    expenses: dict[str, Decimal]
    operating_expenses: Decimal
    noi: Decimal
    monthly_debt_service: Decimal
    monthly_cash_flow: Decimal
    annual_cash_flow: Decimal
    cap_rate: Decimal
    cash_deployed: Decimal
    cash_on_cash: Decimal | None
    dscr: Decimal | None
    dscr_quality: str
    expense_ratio: Decimal


class BRRRRResponse(BaseModel):
    model_config = {"from_attributes": True}

    refinance_loan: Decimal
    cash_out: Decimal
    cash_left_in_deal: Decimal
    cash_on_cash_original: Decimal | None
    cash_on_cash_remaining: Decimal | None
    rental: RentalResponse


class ScoreResponse(BaseModel):
    model_config = {"from_attributes": True}

    strategy: str
    sub_scores: dict[str, Decimal]
    total: Decimal
    label: str
    stars: int
    recommendation: Recommendation | None
    strengths: list[str]
    weaknesses: list[str]


class AlertResponse(BaseModel):
    model_config = {"from_attributes": True}

    type: AlertType
    priority: AlertPriority
    category: str
    message: str
    remedy: str


class SuggestionResponse(BaseModel):
    model_config = {"from_attributes": True}

    category: str
    current: Decimal
    target: Decimal
    message: str
    impact: str


class MetricStatsResponse(BaseModel):
    model_config = {"from_attributes": True}

    mean: float
    median: float
    p10: float
    p90: float
    min: float
    max: float
    std: float


class MonteCarloResponse(BaseModel):
    model_config = {"from_attributes": True}

    requested: int
    iterations: int
    failed_trials: int
    truncated: bool
    seed: int | None
    stats: dict[str, MetricStatsResponse]
    probability_of_loss: float | None


class SaleTaxResponse(BaseModel):
    model_config = {"from_attributes": True}

    gain: Decimal
    depreciation_recapture: Decimal
    recapture_tax: Decimal
    capital_gain: Decimal
    capital_gains_tax: Decimal
    total_tax: Decimal


class HoldResponse(BaseModel):
    model_config = {"from_attributes": True}

    years: int
    discount_rate: Decimal
    irr: Decimal | None
    npv: Decimal
    equity_multiple: Decimal
    total_cash_flow: Decimal
    final_value: Decimal
    sale_tax: SaleTaxResponse


class BreakEvenResponse(BaseModel):
    model_config = {"from_attributes": True}

    rent_without_management: Decimal
    rent_with_management: Decimal
    occupancy: Decimal | None


class LoanScenarioResponse(BaseModel):
    model_config = {"from_attributes": True}

    name: str
    term_years: int
    annual_rate: Decimal
    interest_only_years: int
    monthly_payment: Decimal
    total_interest: Decimal
    monthly_cash_flow: Decimal | None


class TaxBenefitsResponse(BaseModel):
    model_config = {"from_attributes": True}

    annual_depreciation: Decimal
    first_year_interest: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    tax_savings: Decimal
    after_tax_cash_flow: Decimal


class CompQualityResponse(BaseModel):
    model_config = {"from_attributes": True}

    score: int
    label: str
    real_count: int
    estimated_count: int


class CompStatisticsResponse(BaseModel):
    model_config = {"from_attributes": True}

    count: int
    mean_price: Decimal
    median_price: Decimal
    min_price: Decimal
    max_price: Decimal
    mean_price_per_sqft: Decimal | None


class AnalysisResponse(BaseModel):
    address: str
    data_source: str | None
    comp_count: int
    recommendation: Recommendation
    overall_status: str
    arv: ARVResponse
    flip: FlipResponse
    rental: RentalResponse
    brrrr: BRRRRResponse | None = None
    flip_score: ScoreResponse
    rental_score: ScoreResponse
    alerts: list[AlertResponse]
    insights: list[str]
    suggestions: list[SuggestionResponse]
    monte_carlo: MonteCarloResponse | None = None
    hold: HoldResponse | None = None
    break_even: BreakEvenResponse | None = None
    loan_comparison: list[LoanScenarioResponse] = []
    tax_benefits: TaxBenefitsResponse | None = None
    comp_quality: CompQualityResponse | None = None
    comp_statistics: CompStatisticsResponse | None = None


class ScenarioResponse(BaseModel):
    name: str
    net_profit: Decimal
    roi: Decimal
    monthly_cash_flow: Decimal
    deltas: dict[str, Decimal]


class SensitivityResponse(BaseModel):
    model_config = {"from_attributes": True}

    arv_steps: list[Decimal]
    rehab_steps: list[Decimal]
    values: list[list[Decimal]]


class UsageResponse(BaseModel):
    sources: list[QuotaStatus]
    last_success_source: str | None = None
    last_success_at: datetime | None = None
