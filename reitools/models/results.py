from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from reitools.models.valuation import ARVResult, CompQuality, CompStatistics


@dataclass(frozen=True)
class FlipAnalysis:
    purchase_price: Decimal
    rehab_cost: Decimal
    contingency: Decimal
    total_rehab: Decimal
    acquisition_cost: Decimal
    arv: Decimal
    months: int
    monthly_holding: Decimal
    holding_costs: Decimal
    selling_costs: Decimal
    total_cost: Decimal  # purchase + total rehab + acquisition
    net_profit: Decimal
    cash_deployed: Decimal
    roi: Decimal
    roi_per_month: Decimal
    max_allowable_offer: Decimal


@dataclass(frozen=True)
class RentalAnalysis:
    property_value: Decimal
    monthly_rent: Decimal
    gross_income: Decimal  # Annual
    vacancy_loss: Decimal
    effective_gross_income: Decimal
    expenses: dict[str, Decimal]
    operating_expenses: Decimal
    noi: Decimal
    loan_amount: Decimal
    monthly_debt_service: Decimal
    annual_debt_service: Decimal
    annual_cash_flow: Decimal
    monthly_cash_flow: Decimal
    cap_rate: Decimal
    cash_deployed: Decimal
    cash_on_cash: Decimal | None
    dscr: Decimal | None  # None when there is no debt
    dscr_quality: str
    expense_ratio: Decimal


@dataclass(frozen=True)
class BRRRRAnalysis:
    rental: RentalAnalysis
    refinance_loan: Decimal
    cash_out: Decimal
    cash_left_in_deal: Decimal
    cash_on_cash_original: Decimal | None
    cash_on_cash_remaining: Decimal | None  # None when all cash was recovered
    return_on_time: Decimal | None  # CoC per month of the rehab period


@dataclass(frozen=True)
class LoanScenario:
    name: str
    term_years: int
    annual_rate: Decimal
    interest_only_years: int
    monthly_payment: Decimal
    total_interest: Decimal
    monthly_cash_flow: Decimal | None = None


@dataclass(frozen=True)
class BreakEven:
    rent_without_management: Decimal
    rent_with_management: Decimal
    occupancy: Decimal | None  # fraction of gross rent needed


@dataclass(frozen=True)
class YearProjection:
    year: int
    gross_rent: Decimal
    operating_expenses: Decimal
    noi: Decimal
    debt_service: Decimal
    cash_flow: Decimal
    property_value: Decimal
    loan_balance: Decimal
    equity: Decimal


@dataclass(frozen=True)
class TaxBenefits:
    annual_depreciation: Decimal
    first_year_interest: Decimal
    total_deductions: Decimal
    taxable_income: Decimal
    tax_savings: Decimal
    after_tax_cash_flow: Decimal


@dataclass(frozen=True)
class SaleTax:
    gain: Decimal
    depreciation_recapture: Decimal
    recapture_tax: Decimal
    capital_gain: Decimal
    capital_gains_tax: Decimal
    total_tax: Decimal


@dataclass(frozen=True)
class HoldMetrics:
    """Hold-and-sell returns over a multi-year projection."""

    years: int
    discount_rate: Decimal
    irr: Decimal | None  # None when the cash flows have no sign change
    npv: Decimal
    equity_multiple: Decimal
    total_cash_flow: Decimal  # operating cash flow only, before sale
    final_value: Decimal
    sale_tax: SaleTax


@dataclass(frozen=True)
class ScenarioAdjustment:
    """Deltas applied to a base case. Percentages are in percent units."""
    name: str = "custom"
    arv_pct: Decimal = Decimal("0")
    rehab_pct: Decimal = Decimal("0")
    rent_pct: Decimal = Decimal("0")
    rate_delta: Decimal = Decimal("0")  # Percentage points
    months_delta: int = 0


@dataclass(frozen=True)
class ScenarioResult:
    adjustment: ScenarioAdjustment
    flip: FlipAnalysis
    rental: RentalAnalysis
    deltas: dict[str, Decimal]


@dataclass(frozen=True)
class SensitivityMatrix:
    """Net flip profit over a grid of ARV (rows) and rehab (columns) changes."""
    arv_steps: list[Decimal]  # Percent
    rehab_steps: list[Decimal]  # Percent
    values: list[list[Decimal]]


@dataclass(frozen=True)
class MetricStats:
    mean: float
    median: float
    p10: float
    p90: float
    min: float
    max: float
    std: float


@dataclass(frozen=True)
class MonteCarloResult:
    requested: int
    iterations: int
    failed_trials: int
    truncated: bool
    seed: int | None
    stats: dict[str, MetricStats]
    probability_of_loss: float | None = None


class AlertType(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class AlertPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Alert:
    type: AlertType
    priority: AlertPriority
    category: str
    message: str
    remedy: str = ""


class Recommendation(str, Enum):
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    PROCEED_WITH_CAUTION = "PROCEED_WITH_CAUTION"
    DO_NOT_PROCEED = "DO_NOT_PROCEED"
    PASS = "PASS"


@dataclass(frozen=True)
class ScoreBreakdown:
    strategy: str  # "flip" | "rental"
    sub_scores: dict[str, Decimal]  # 0-100 each
    weights: dict[str, Decimal]
    total: Decimal  # 0-100
    label: str
    stars: int
    recommendation: Recommendation | None = None
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ScoreComparison:
    ranked: list[tuple[str, ScoreBreakdown]]  # Best first
    average: Decimal
    highest: Decimal
    lowest: Decimal


@dataclass(frozen=True)
class AlertReport:
    alerts: list[Alert]  # Sorted, most urgent first
    summary: dict[str, int]
    overall_status: str  # CRITICAL, CAUTION, EXCELLENT, GOOD


@dataclass(frozen=True)
class Suggestion:
    category: str
    current: Decimal
    target: Decimal
    message: str
    impact: str  # high, medium


@dataclass(frozen=True)
class DealAnalysis:
    arv: ARVResult
    flip: FlipAnalysis
    rental: RentalAnalysis
    flip_score: ScoreBreakdown
    rental_score: ScoreBreakdown
    alerts: AlertReport
    recommendation: Recommendation
    insights: list[str]
    suggestions: list[Suggestion]
    comp_count: int
    data_source: str | None  # None when every source failed
    brrrr: BRRRRAnalysis | None = None
    monte_carlo: MonteCarloResult | None = None
    hold: HoldMetrics | None = None
    break_even: BreakEven | None = None
    loan_comparison: list[LoanScenario] = field(default_factory=list)
    tax_benefits: TaxBenefits | None = None
    comp_quality: CompQuality | None = None
    comp_statistics: CompStatistics | None = None
