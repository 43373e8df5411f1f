"""
Shared fixtures: in-memory SQLite per test, seeded staff accounts, a logged-in API client.

Environment is set before any cannaclub import so settings pick it up.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ALLOWED_HOSTS", "*")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "100000")
os.environ.setdefault("SEED_DEMO_PRODUCTS", "false")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cannaclub import models  # noqa: F401 - register models
from cannaclub.api.deps import get_db
from cannaclub.core.rate_limiter import rate_limiter
from cannaclub.core.security import get_password_hash
from cannaclub.db.base import Base
from cannaclub.db.session import atomic
from cannaclub.main import app
from cannaclub.models.member import Member
from cannaclub.models.product import Product
from cannaclub.models.user import User
from cannaclub.services import cash_register_service, member_service

ADMIN_PASSWORD = "admin-pass"
STAFF_PASSWORD = "staff-pass"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin(db) -> User:
    user = User(
        username="admin",
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        full_name="Admin User",
        is_admin=True,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def staff(db) -> User:
    user = User(
        username="counter",
        hashed_password=get_password_hash(STAFF_PASSWORD),
        full_name="Counter Staff",
        is_admin=False,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def member(db) -> Member:
    with atomic(db):
        m = member_service.create_member(db, first_name="Laura", last_name="Martín", dni="12345678Z")
    return m


@pytest.fixture
def product(db) -> Product:
    """Amnesia Haze at 8.50/g with 50 g in stock."""
    p = Product(
        name="Amnesia Haze",
        category="Flor",
        type="sativa",
        price=Decimal("8.50"),
        cost_price=Decimal("6.00"),
        stock_grams=Decimal("50.00"),
        is_visible=True,
    )
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def open_register(db, admin):
    with atomic(db):
        register = cash_register_service.open_register(db, Decimal("100.00"), admin.id)
    return register


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    rate_limiter.reset()
    # No context manager: the lifespan would run init_db against the real engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def _login(client: TestClient, username: str, password: str) -> dict:
    resp = client.post("/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, admin) -> dict:
    return _login(client, "admin", ADMIN_PASSWORD)


@pytest.fixture
def staff_headers(client, staff) -> dict:
    return _login(client, "counter", STAFF_PASSWORD)
