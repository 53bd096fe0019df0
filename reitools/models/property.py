from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum


class Condition(str, Enum):
    REMODELED = "remodeled"
    UNREMODELED = "unremodeled"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PropertyQuery:
    address: str
    city: str
    state: str
    zip_code: str

    @property
    def full(self) -> str:
        return f"{self.address}, {self.city}, {self.state} {self.zip_code}"

    @property
    def cache_key(self) -> str:
        """Normalized `address|city|state|zip` key used for cache equality."""
        parts = (self.address, self.city, self.state, self.zip_code)
        return "|".join(" ".join(p.lower().split()) for p in parts)


@dataclass(frozen=True)
class ComparableProperty:
    address: str
    price: Decimal
    source: str
    is_empirical: bool = True
    bedrooms: int = 0
    bathrooms: Decimal = Decimal("0")
    sqft: int = 0
    year_built: int | None = None
    sale_date: date | None = None
    distance_miles: Decimal | None = None
    condition: Condition = Condition.UNKNOWN

    @property
    def price_per_sqft(self) -> Decimal | None:
        if self.sqft <= 0:
            return None
        return self.price / self.sqft

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "price": str(self.price),
            "source": self.source,
            "is_empirical": self.is_empirical,
            "bedrooms": self.bedrooms,
            "bathrooms": str(self.bathrooms),
            "sqft": self.sqft,
            "year_built": self.year_built,
            "sale_date": self.sale_date.isoformat() if self.sale_date else None,
            "distance_miles": str(self.distance_miles) if self.distance_miles is not None else None,
            "condition": self.condition.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComparableProperty":
        """Rebuild a comparable from `to_dict` output (cache round trip)."""
        distance = data.get("distance_miles")
        sale_date = data.get("sale_date")
        return cls(
            address=data["address"],
            price=Decimal(data["price"]),
            source=data["source"],
            is_empirical=data.get("is_empirical", True),
            bedrooms=data.get("bedrooms", 0),
            bathrooms=Decimal(data.get("bathrooms", "0")),
            sqft=data.get("sqft", 0),
            year_built=data.get("year_built"),
            sale_date=date.fromisoformat(sale_date) if sale_date else None,
            distance_miles=Decimal(distance) if distance is not None else None,
            condition=Condition(data.get("condition", "unknown")),
        )


@dataclass(frozen=True)
class PricePoint:
    """A dated sale or valuation from a property's price history."""
    date: date
    price: Decimal


def _to_decimal(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def parse_sale_date(value) -> date | None:
    """Parse ISO dates, ISO datetimes, M/D/YYYY strings, and unix timestamps.

    Raises ValueError when a value is present but is not a calendar date.
    """
    if value is None or value == "" or value == "—":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        # Zillow sends epoch milliseconds for large values, seconds otherwise
        seconds = value / 1000 if value > 10_000_000_000 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    return datetime.strptime(text, "%m/%d/%Y").date()


def parse_condition(value) -> Condition:
    if isinstance(value, Condition):
        return value
    text = str(value or "").strip().lower()
    if text in ("remodeled", "renovated", "updated"):
        return Condition.REMODELED
    if text in ("unremodeled", "original", "needs work", "distressed"):
        return Condition.UNREMODELED
    return Condition.UNKNOWN


def build_comparable(raw: dict, source: str, is_empirical: bool = True) -> ComparableProperty | None:
    """Normalize one provider record into a ComparableProperty.

    Returns None for records that break the model invariants: missing or
    non-positive price, or a sale date that is not a valid calendar date.
    """
    price = _to_decimal(raw.get("price"))
    if price is None or not price.is_finite() or price <= 0:
        return None
    try:
        sale_date = parse_sale_date(raw.get("sale_date"))
    except (ValueError, OverflowError, OSError):
        return None

    try:
        bedrooms = int(raw.get("bedrooms") or 0)
        sqft = int(float(raw.get("sqft") or 0))
        year_built = int(raw["year_built"]) if raw.get("year_built") else None
    except (TypeError, ValueError):
        return None

    return ComparableProperty(
        address=str(raw.get("address") or "Unknown"),
        price=price,
        source=source,
        is_empirical=is_empirical,
        bedrooms=bedrooms,
        bathrooms=_to_decimal(raw.get("bathrooms")) or Decimal("0"),
        sqft=sqft,
        year_built=year_built,
        sale_date=sale_date,
        distance_miles=_to_decimal(raw.get("distance_miles")),
        condition=parse_condition(raw.get("condition")),
    )


def validate_comparables(
    records: list, source: str, is_empirical: bool = True
) -> list[ComparableProperty]:
    """Keep only records that form valid comparables, in their original order."""
    valid: list[ComparableProperty] = []
    for record in records:
        if isinstance(record, ComparableProperty):
            comp = record if record.price > 0 else None
        elif isinstance(record, dict):
            comp = build_comparable(record, source, is_empirical)
        else:
            comp = None
        if comp is not None:
            valid.append(comp)
    return valid
