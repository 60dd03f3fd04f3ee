"""
Pytest configuration and fixtures for the invoicing backend tests.
"""
import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal

# Configure before any project module reads the environment
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import Base, Client, OrderProduct, RepairOrder
from services.chain_builder import ChainBuilder


class StepClock:
    """Deterministic clock: every call returns the next instant."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return StepClock(datetime(2025, 3, 14, 10, 0, 0))


@pytest.fixture
def builder(clock):
    return ChainBuilder(max_attempts=3, clock=clock)


@pytest.fixture
def client_record(db):
    client = Client(first_name="Ana", last_name="Ruiz", tax_id="12345678Z", email="ana@example.com")
    db.add(client)
    db.commit()
    return client


@pytest.fixture
def repair_order(db, client_record):
    """Labour 40.00 plus two inner tubes at 15.50."""
    order = RepairOrder(
        client_id=client_record.id,
        description="Puncture repair and tube replacement",
        estimated_cost=Decimal("40.00"),
    )
    order.products.append(
        OrderProduct(
            product_name="Inner tube 29\"",
            quantity=2,
            unit_price=Decimal("15.50"),
            subtotal=OrderProduct.line_subtotal(2, Decimal("15.50")),
        )
    )
    db.add(order)
    db.commit()
    return order


@pytest.fixture
def api_client(session_factory, builder):
    """TestClient bound to the in-memory database and deterministic builder."""
    from fastapi.testclient import TestClient

    from database import get_session
    from main import app
    from routers.deps import get_chain_builder

    def _get_session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_chain_builder] = lambda: builder
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def bearer(role: str = "admin", user_id: int = 1) -> dict:
    from auth import create_access_token
    return {"Authorization": f"Bearer {create_access_token({'id': user_id, 'role': role})}"}


@pytest.fixture
def admin_headers():
    return bearer("admin")


@pytest.fixture
def mechanic_headers():
    return bearer("mechanic", user_id=7)
