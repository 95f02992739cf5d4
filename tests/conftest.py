"""Pytest fixtures: test client, isolated ledger DB (in-memory SQLite), tokens, frozen clock."""
import os
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# In-memory SQLite for the app (must be set before the app is imported)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
# High limits so every test can open and move boxes freely
os.environ.setdefault("RATE_LIMIT_CREATE_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")

from paybox.api.deps import get_clock
from paybox.core.clock import FrozenClock
from paybox.core.security import create_access_token
from paybox.main import app
import paybox.models  # noqa: F401
from paybox.services.events import ChangeFeed
from paybox.services.ledger import PaymentBoxLedger
from paybox.services.state_machine import Actor

T0 = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def client():
    """TestClient; the lifespan creates the in-memory tables."""
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    return FrozenClock(T0)


@pytest.fixture
def api_clock(clock):
    """Routes read time from the frozen clock instead of the wall clock."""
    app.dependency_overrides[get_clock] = lambda: clock
    yield clock
    app.dependency_overrides.pop(get_clock, None)


def auth_headers(user_id: str, role: str = "user") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def make_headers():
    return auth_headers


@pytest.fixture
def users():
    """Fresh seller/buyer ids per test; the app database is shared across tests."""
    suffix = uuid.uuid4().hex[:8]
    seller = f"seller-{suffix}"
    buyer = f"buyer-{suffix}"
    return {
        "seller": seller,
        "buyer": buyer,
        "seller_headers": auth_headers(seller),
        "buyer_headers": auth_headers(buyer),
        "admin_headers": auth_headers(f"admin-{suffix}", "admin"),
    }


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    with Session(db_engine) as session:
        yield session


@pytest.fixture
def events():
    return ChangeFeed(limit=100)


@pytest.fixture
def ledger(db, clock, events):
    return PaymentBoxLedger(db, clock=clock, events=events)


@pytest.fixture
def seller():
    return Actor(id="seller-1")


@pytest.fixture
def buyer():
    return Actor(id="buyer-1")


@pytest.fixture
def admin():
    return Actor(id="admin-1", role="admin")
