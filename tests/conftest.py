"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from mutuos.models.contract import LoanContract
from mutuos.money import Money
from mutuos.schedule.generator import ScheduleGenerator
from mutuos.store.ledger import InMemoryLedger


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sample_contract_id() -> str:
    """Sample contract ID."""
    return "mutuo-test-001"


@pytest.fixture
def start_date() -> date:
    """Contract start date."""
    return date(2024, 1, 15)


@pytest.fixture
def sac_contract(sample_contract_id: str, start_date: date) -> LoanContract:
    """120,000.00 at 12% a.a., no grace."""
    return LoanContract(
        contract_id=sample_contract_id,
        principal=Money(Decimal("120000.00")),
        annual_rate=Decimal("12"),
        start_date=start_date,
    )


@pytest.fixture
def interest_free_contract(start_date: date) -> LoanContract:
    """60,000.00 at 0% a.a. with 2 months of grace."""
    return LoanContract(
        contract_id="mutuo-test-002",
        principal=Money(Decimal("60000.00")),
        annual_rate=Decimal("0"),
        start_date=start_date,
        grace_months=2,
    )


@pytest.fixture
def ledger() -> InMemoryLedger:
    """Create a fresh ledger for each test."""
    return InMemoryLedger(lock_timeout=0.05)


@pytest.fixture
def generator(ledger: InMemoryLedger) -> ScheduleGenerator:
    """Schedule generator bound to the test ledger."""
    return ScheduleGenerator(ledger)
