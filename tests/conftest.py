"""
Shared fixtures for the TradeNest test suite

Every test gets a fresh in-memory SQLite database. The engine uses StaticPool so
the FastAPI TestClient (which runs sync endpoints on worker threads) sees the
same database as the test body.
"""

import os

# Must be set before config is imported anywhere
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AUTH_TOKEN_SECRET", "test-auth-token-secret")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("EXPIRY_SWEEP_ENABLED", "false")
os.environ["BREVO_API_KEY"] = ""

import itertools
from decimal import Decimal
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base, User
from utils.security import AuthTokenSecurity, hash_password

TEST_PASSWORD = "secret123"

_user_sequence = itertools.count(1)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(test_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db_session):
    """Factory for committed users with a known password"""

    def _make_user(balance="0", verified=True, admin=False, email=None, full_name="Test Trader",
                   referral_code=None, **kwargs):
        n = next(_user_sequence)
        user = User(
            full_name=full_name,
            email=email or f"trader{n}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            is_verified=verified,
            is_admin=admin,
            balance=Decimal(balance),
            total_profit=Decimal("0"),
            referral_code=referral_code or f"TST{n:06d}",
            referral_count=0,
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def mock_email_service():
    service = Mock()
    service.send_otp_email.return_value = True
    service.send_password_reset_email.return_value = True
    return service


@pytest.fixture
def client(session_factory, mock_email_service):
    """TestClient bound to the test database; the lifespan (scheduler) is not started"""
    from fastapi.testclient import TestClient

    from api_server import app
    from database import get_db
    from routes.dependencies import get_email_service

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_email_service] = lambda: mock_email_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header for a user"""

    def _auth_headers(user) -> dict:
        return {"Authorization": f"Bearer {AuthTokenSecurity.issue_token(user.id)}"}

    return _auth_headers
