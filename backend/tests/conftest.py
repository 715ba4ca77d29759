"""
Shared test fixtures for RemitDesk tests

Provides database setup, client creation, and user fixtures
"""
import os

# The app builds its engine at import time; keep it off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.core.config import settings
from app.core.security import create_access_token, hash_password
from app.core.limiter import limiter
from app.services.change_feed import change_feed
from app.services.notification_service import notifications
from app.services.workflow_controller import WorkflowController

from tests.factories import reset_sequences

# Disable rate limiting for tests
limiter.enabled = False


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    import app.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)
    reset_sequences()

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def db(db_session):
    """Short alias used by most tests"""
    return db_session


@pytest.fixture(autouse=True)
def workflow_state(tmp_path, monkeypatch):
    """
    Isolate process-wide workflow state per test: proofs go to a temp dir,
    the change feed / notification queues start empty, and no entity is
    left marked as in flight.
    """
    monkeypatch.setattr(settings, "PROOF_UPLOAD_DIR", str(tmp_path / "proofs"))
    monkeypatch.setattr(settings, "DELIVERY_PROOF_REQUIRED", True)
    monkeypatch.setattr(settings, "AUTO_COMPLETE_ON_DELIVERY", False)
    monkeypatch.setattr(settings, "PROOF_EXEMPT_DELIVERY_METHODS", [])
    change_feed.clear()
    notifications.clear()
    WorkflowController._in_flight.clear()
    yield
    change_feed.clear()
    notifications.clear()
    WorkflowController._in_flight.clear()


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
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
def admin_user(db_session):
    """Create an admin user for testing"""
    from app.models.user import User

    user = User(
        email="admin@test.com",
        password_hash=hash_password("AdminPass123!"),
        first_name="Admin",
        last_name="User",
        account_type="admin",
        status="active",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def second_admin(db_session):
    """Another admin, for concurrent-edit scenarios"""
    from app.models.user import User

    user = User(
        email="admin2@test.com",
        password_hash=hash_password("AdminPass123!"),
        first_name="Second",
        last_name="Admin",
        account_type="admin",
        status="active",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def customer_user(db_session):
    """Create a customer user for testing"""
    from app.models.user import User

    user = User(
        email="customer@test.com",
        password_hash=hash_password("CustomerPass123!"),
        first_name="Customer",
        last_name="User",
        account_type="customer",
        status="active",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_token(admin_user):
    """Generate an access token for the admin user"""
    return create_access_token(admin_user.id)


@pytest.fixture
def customer_token(customer_user):
    """Generate an access token for the customer user"""
    return create_access_token(customer_user.id)


@pytest.fixture
def admin_headers(admin_token):
    """Return authorization headers for admin user"""
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def customer_headers(customer_token):
    """Return authorization headers for customer user"""
    return {"Authorization": f"Bearer {customer_token}"}


@pytest.fixture
def admin_actor(admin_user):
    from app.services.workflow_types import Actor
    return Actor.from_user(admin_user)


@pytest.fixture
def customer_actor(customer_user):
    from app.services.workflow_types import Actor
    return Actor.from_user(customer_user)
