"""Canonical test fixtures used across engine and data tests.

Fixture: $500K property, $50K rehab, 80% LTV, 7% rate, 30yr fixed, $3,500/mo rent.
"""

from datetime import date
from decimal import Decimal

import pytest

from reitools.data.store import MemoryStore
from reitools.models.assumptions import AnalysisInputs
from reitools.models.property import ComparableProperty, Condition, PropertyQuery


@pytest.fixture
def canonical_inputs() -> AnalysisInputs:
    """$500K purchase with standard flip and rental assumptions."""
    return AnalysisInputs(
        purchase_price=Decimal("500000"),
        rehab_cost=Decimal("50000"),
        down_payment_pct=Decimal("0.20"),
        interest_rate=Decimal("0.07"),
        loan_term_years=30,
        months_to_flip=6,
        monthly_rent=Decimal("3500"),
        vacancy_rate=Decimal("0.06"),
        maintenance_rate=Decimal("0.01"),
    )


@pytest.fixture
def sample_query() -> PropertyQuery:
    return PropertyQuery(address="123 Main St", city="Columbus", state="OH", zip_code="43215")


@pytest.fixture
def as_of() -> date:
    return date(2025, 6, 1)


@pytest.fixture
def remodeled_comps() -> list[ComparableProperty]:
    """Three recent remodeled sales averaging $580K."""
    return [
        ComparableProperty(
            address=f"{n} Oak Ave",
            price=Decimal(price),
            source="private_zillow",
            bedrooms=3,
            bathrooms=Decimal("2"),
            sqft=1800,
            sale_date=date(2025, 3, 1),
            distance_miles=Decimal("0.4"),
            condition=Condition.REMODELED,
        )
        for n, price in ((101, "570000"), (103, "580000"), (105, "590000"))
    ]


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()
