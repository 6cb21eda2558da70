"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the real
one. Tables are created before and dropped after every test.
"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from hours_bank.main import app
from hours_bank.models import Base, Company, QuantityKind, ContractKind
from hours_bank.models.base import get_db
from hours_bank.schemas.contract import ContractParametersCreate
from hours_bank.schemas.usage import RateCreate, UsageUpdate
from hours_bank.services.duration import parse_duration_strict
from hours_bank.services.hours_bank_service import HoursBankService
from hours_bank.services.locks import LockRegistry


# Use SQLite for tests, no external database needed.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class RecordingNotifier:
    """Keeps emitted events so tests can assert on them."""

    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)

    def kinds(self):
        return [event.kind for event in self.events]


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the FastAPI app
    uses the test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def locks():
    return LockRegistry(timeout=0)


@pytest.fixture
def service(db_session, notifier, locks):
    return HoursBankService(db_session, notifier=notifier, locks=locks)


@pytest.fixture
def company(db_session):
    company = Company(name="Acme Ltda")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def make_contract(service):
    """
    Create contract parameters for a company.

    Defaults: hours only, 100:00 per month, one-month cycle,
    effective from January 2024.
    """
    def _make(company_id, **overrides):
        fields = {
            "contract_kind": ContractKind.HOURS,
            "assessment_period_months": 1,
            "effective_from": date(2024, 1, 1),
            "baseline_hours": "100:00",
        }
        fields.update(overrides)
        params, _ = service.set_contract_parameters(
            company_id, ContractParametersCreate(**fields)
        )
        return params
    return _make


@pytest.fixture
def set_usage(service, db_session):
    """Store usage totals without triggering any recalculation."""
    def _set(company_id, year, month, consumed="0:00", billed="0:00",
             consumed_tickets="0", billed_tickets="0"):
        data = UsageUpdate(
            consumed_hours=consumed,
            billed_hours=billed,
            consumed_tickets=Decimal(consumed_tickets),
            billed_tickets=Decimal(billed_tickets),
        )
        snapshot = service.usage.store(
            company_id, year, month,
            parse_duration_strict(data.consumed_hours),
            data.consumed_tickets,
            parse_duration_strict(data.billed_hours),
            data.billed_tickets,
        )
        db_session.commit()
        return snapshot
    return _set


@pytest.fixture
def add_rate(service):
    def _add(company_id, unit_rate="150", kind=QuantityKind.HOURS,
             valid_from=date(2024, 1, 1), valid_to=None):
        return service.add_rate(company_id, RateCreate(
            kind=kind,
            unit_rate=Decimal(unit_rate),
            valid_from=valid_from,
            valid_to=valid_to,
        ))
    return _add
