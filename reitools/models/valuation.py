from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class ValuationEstimate:
    source: str
    value: Decimal
    weight: Decimal
    confidence: Decimal = Decimal("0")  # 0-100


@dataclass(frozen=True)
class TrendValidation:
    annual_rate: Decimal
    expected_value: Decimal
    deviation_pct: Decimal  # fraction, signed
    is_consistent: bool
    warning: str | None = None


@dataclass(frozen=True)
class CompStatistics:
    count: int
    mean_price: Decimal
    median_price: Decimal
    min_price: Decimal
    max_price: Decimal
    mean_price_per_sqft: Decimal | None


@dataclass(frozen=True)
class CompQuality:
    score: int  # 0-100
    label: str  # High, Medium, Low
    real_count: int
    estimated_count: int


@dataclass(frozen=True)
class ARVResult:
    arv: Decimal
    confidence: Decimal  # 0-100
    sources: list[ValuationEstimate]
    confidence_interval: tuple[Decimal, Decimal]
    low_confidence: bool = False
    warnings: list[str] = field(default_factory=list)
    trend: TrendValidation | None = None


@dataclass(frozen=True)
class CompEstimate:
    """Value implied by comparable sales for the subject after renovation."""
    value: Decimal
    method: str
    comps_used: int
    remodeled_count: int
    unremodeled_count: int
    renovation_premium: Decimal | None = None
    sqft_adjustment: Decimal = Decimal("1")
