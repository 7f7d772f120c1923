"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from microlend.models import Client, Loan, LoanFrequency, LoanTerms, PaymentType
from microlend.services import LoanService
from microlend.store import LoanStore


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sample_client_id() -> str:
    """Sample client ID."""
    return "client-test-001"


@pytest.fixture
def sample_loan_id() -> str:
    """Sample loan ID."""
    return "loan-test-001"


@pytest.fixture
def sample_client(sample_client_id: str) -> Client:
    """Create a sample client."""
    return Client(
        client_id=sample_client_id,
        name="María López",
        phone="+52 55 1234 5678",
        address="Av. Juárez 100, Centro, CDMX",
        id_document="LOMM800101HDFPRR09",
        occupation="Comerciante",
    )


@pytest.fixture
def monthly_terms() -> LoanTerms:
    """1000 at 10% a year, 12 monthly installments from 2023-10-01."""
    return LoanTerms(
        principal=Decimal("1000"),
        payment_type=PaymentType.INTEREST_RATE,
        frequency=LoanFrequency.MONTHLY,
        issue_date=date(2023, 10, 1),
        term=12,
        interest_rate=Decimal("10"),
    )


@pytest.fixture
def weekly_fixed_terms() -> LoanTerms:
    """500 repaid as 12 weekly installments of 50 from 2023-11-15."""
    return LoanTerms(
        principal=Decimal("500"),
        payment_type=PaymentType.FIXED,
        frequency=LoanFrequency.WEEKLY,
        issue_date=date(2023, 11, 15),
        term=12,
        fixed_payment=Decimal("50"),
    )


@pytest.fixture
def sample_loan(sample_loan_id: str, sample_client_id: str) -> Loan:
    """Create a sample interest-rate loan (1000 at 10%, 12 monthly)."""
    return Loan(
        loan_id=sample_loan_id,
        client_id=sample_client_id,
        principal=Decimal("1000"),
        payment_type=PaymentType.INTEREST_RATE,
        frequency=LoanFrequency.MONTHLY,
        issue_date=date(2023, 10, 1),
        term=12,
        interest_rate=Decimal("10"),
        employee_id="EMP-001",
        route_id="RUTA-01",
    )


@pytest.fixture
def fixed_loan(sample_client_id: str) -> Loan:
    """Create a sample fixed-payment loan (4 weekly installments of 300)."""
    return Loan(
        loan_id="loan-test-002",
        client_id=sample_client_id,
        principal=Decimal("1000"),
        payment_type=PaymentType.FIXED,
        frequency=LoanFrequency.WEEKLY,
        issue_date=date(2024, 1, 1),
        term=4,
        fixed_payment=Decimal("300"),
    )


@pytest.fixture
def store(sample_client: Client) -> LoanStore:
    """Create a fresh in-memory store holding the sample client."""
    store = LoanStore()
    store.add_client(sample_client)
    return store


@pytest.fixture
def service(store: LoanStore) -> LoanService:
    """Create a loan service over the sample store."""
    return LoanService(store)
