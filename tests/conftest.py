"""
Pytest configuration and fixtures

Database: TEST_DATABASE_URL (PostgreSQL) if set, otherwise a temporary SQLite
file. A file (not :memory:) so the accrual worker threads, the CLI script and
the API all share the same database through their own sessions.
"""

import pytest
import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

# Set test environment variables before importing app
_tmp_dir = tempfile.mkdtemp(prefix="bot-returns-test-")
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL") or f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["REDIS_URL"] = os.getenv("TEST_REDIS_URL", "redis://localhost:6379/1")
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["METRICS_PUBLIC"] = "false"
os.environ["METRICS_TOKEN"] = "test-metrics-token"
os.environ["ACCRUAL_MAX_WORKERS"] = "1"
os.environ["ACCRUAL_MAX_RETRIES"] = "3"
os.environ["ACCRUAL_RETRY_BACKOFF_SECONDS"] = "0.01"

from sqlalchemy.orm import Session
from fastapi.testclient import TestClient

from app.infrastructure.database import Base, engine, SessionLocal, get_db, get_session_factory
from app.main import app
from app.core.users.models import User, UserStatus
from app.core.plans.models import InvestmentPlan
from app.core.investments.models import Investment, InvestmentStatus
from app.services.wallet_helpers import ensure_wallet, apply_wallet_delta
from app.services.fund_services import record_deposit

from tests.accrual_utils import NOW


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Create a fresh database session for each test.
    Drops and recreates all tables before and after each test.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_session: Session):
    """Session factory for the accrual runner (one session per unit of work)"""
    return SessionLocal


def _create_user(db: Session, email: str) -> User:
    user = User(
        id=uuid4(),
        email=email,
        status=UserStatus.ACTIVE,
        first_name="Test",
        other_names="User",
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def make_user(db_session: Session):
    """Factory: create a user, with an empty wallet unless with_wallet=False (committed)"""
    def _make(email: str = None, with_wallet: bool = True) -> User:
        user = _create_user(db_session, email or f"user-{uuid4().hex[:8]}@example.com")
        if with_wallet:
            ensure_wallet(db_session, user.id)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def test_user(make_user) -> User:
    """A user with an empty wallet"""
    return make_user("test@example.com")


@pytest.fixture
def funded_user(db_session: Session, test_user: User) -> User:
    """test_user with 10000 in available_balance"""
    record_deposit(db_session, test_user.id, Decimal("10000"))
    return test_user


@pytest.fixture
def test_plan(db_session: Session) -> InvestmentPlan:
    """1.5%/day for 30 days, minimum 100"""
    plan = InvestmentPlan(
        id=uuid4(),
        name="Momentum Bot",
        description="Trend following",
        risk_level="medium",
        daily_return_rate=Decimal("1.5"),
        minimum_investment=Decimal("100"),
        duration_days=30,
        is_active=True,
    )
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture
def make_investment(db_session: Session, test_plan: InvestmentPlan):
    """
    Factory: create an ACTIVE investment directly (committed).

    The wallet is kept consistent with it: locked_balance += locked_amount and
    returns_balance += accumulated_returns, as if earlier passes had run.
    """
    def _make(
        user: User,
        locked_amount: Decimal = Decimal("1000"),
        rate: Decimal = Decimal("1.5"),
        end_date: datetime = None,
        accumulated_returns: Decimal = Decimal("0"),
        start_date: datetime = None,
        fund_wallet: bool = True,
    ) -> Investment:
        end_date = end_date or NOW + timedelta(days=30)
        investment = Investment(
            id=uuid4(),
            user_id=user.id,
            plan_id=test_plan.id,
            initial_amount=locked_amount,
            locked_amount=locked_amount,
            accumulated_returns=accumulated_returns,
            daily_return_rate=rate,
            start_date=start_date or end_date - timedelta(days=30),
            end_date=end_date,
            status=InvestmentStatus.ACTIVE.value,
        )
        db_session.add(investment)
        db_session.flush()
        if fund_wallet:
            apply_wallet_delta(db_session, user.id, locked=locked_amount, returns=accumulated_returns)
        db_session.commit()
        return investment
    return _make


@pytest.fixture(scope="function")
def client(db_session: Session):
    """
    Create FastAPI test client with dependency overrides.
    Every request gets its own session on the test database.
    """
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: SessionLocal

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
