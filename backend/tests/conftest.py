"""Shared test fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from datetime import date
from decimal import Decimal
import uuid

from ledger.database import Base
from ledger.dependencies import get_db
from ledger.main import app
from ledger.models.account import Account, CreditCard
from ledger.models.category import Category
from ledger.models.transaction import Transaction, TransactionType
from ledger.services.recurrence_service import RecurrenceRule
from ledger.services.series_service import SeriesLifecycleManager
from ledger.services.transaction_store import TransactionStore


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def store(db_session):
    return TransactionStore(db_session)


@pytest.fixture
def manager(store):
    return SeriesLifecycleManager(store)


@pytest.fixture
def sample_account(db_session):
    """Create a sample bank account."""
    account = Account(id=str(uuid.uuid4()), name="Checking", bank_name="First Bank", is_default=True)
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def sample_card(db_session):
    """Create a sample credit card."""
    card = CreditCard(id=str(uuid.uuid4()), name="Visa", last_digits="4242", closing_day=5, due_day=15)
    db_session.add(card)
    db_session.commit()
    db_session.refresh(card)
    return card


@pytest.fixture
def sample_category(db_session):
    """Create a sample category."""
    category = Category(
        id=str(uuid.uuid4()),
        name="Subscriptions",
        color="#a855f7",
        icon="repeat",
        is_system=True
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def gym_payload(sample_account, sample_category):
    """Shared fields of a monthly gym membership."""
    return {
        "title": "Gym membership",
        "description": "Monthly plan",
        "amount": Decimal("49.90"),
        "type": TransactionType.expense,
        "category_id": sample_category.id,
        "account_id": sample_account.id,
    }


@pytest.fixture
def monthly_rule():
    """Twelve monthly occurrences anchored on a month end."""
    return RecurrenceRule(frequency="monthly", start_date=date(2024, 1, 31), count=12)


@pytest.fixture
def sample_series(manager, gym_payload, monthly_rule):
    """A materialized monthly series: one parent and twelve children."""
    return manager.create(gym_payload, monthly_rule)


@pytest.fixture
def sample_transaction(db_session, sample_account, sample_category):
    """Create a sample one-off transaction."""
    txn = Transaction(
        id=str(uuid.uuid4()),
        title="Groceries",
        amount=Decimal("120.35"),
        type=TransactionType.expense,
        date=date(2024, 1, 15),
        category_id=sample_category.id,
        account_id=sample_account.id,
    )
    db_session.add(txn)
    db_session.commit()
    db_session.refresh(txn)
    return txn
