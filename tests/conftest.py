"""Pytest configuration and fixtures."""

import os
from decimal import Decimal

import pyotp
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.database import Base, get_db
from src.main import app
from src.models.dish import Dish
from src.models.ingredient import Ingredient
from src.services.auth import create_user
from src.services.catalog import CatalogService

TOTP_SECRET = "LXBSMDTMSP2I5XFXIYRGFVWSFI"  # noqa: S105


class AuthHeaders(dict):
    """Dict subclass that also stores user_id and username."""

    def __init__(self, *args, user_id: int | None = None, username: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.username = username


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/restaurant", "/restaurant_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        from sqlalchemy_utils import create_database, database_exists

        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def menu(db):
    """Seed the restaurant catalog.

    Returns a dict with ``dishes`` and ``ingredients`` keyed by name.
    """
    dishes = {name: Dish(name=name) for name in ("Pizza", "Pasta", "Salad")}
    stock = {
        "mozzarella": ("1.00", 3),
        "tomatoes": ("0.50", None),
        "mushrooms": ("0.80", 3),
        "ham": ("1.20", 2),
        "olives": ("0.70", None),
        "tuna": ("1.50", 2),
        "eggs": ("1.00", None),
        "anchovies": ("1.50", 1),
        "parmesan": ("1.20", None),
        "carrots": ("0.40", None),
        "potatoes": ("0.30", None),
    }
    ingredients = {
        name: Ingredient(name=name, price=Decimal(price), stock=units)
        for name, (price, units) in stock.items()
    }
    db.add_all(list(dishes.values()) + list(ingredients.values()))
    db.flush()

    catalog = CatalogService(db)
    for name, required in [
        ("tomatoes", "olives"),
        ("parmesan", "mozzarella"),
        ("mozzarella", "tomatoes"),
        ("tuna", "olives"),
    ]:
        catalog.add_requirement(ingredients[name].id, ingredients[required].id)
    for first, second in [
        ("eggs", "mushrooms"),
        ("eggs", "tomatoes"),
        ("ham", "mushrooms"),
        ("olives", "anchovies"),
    ]:
        catalog.add_incompatibility(ingredients[first].id, ingredients[second].id)
    db.commit()

    return {"dishes": dishes, "ingredients": ingredients}


@pytest.fixture
def ids(menu):
    """Ingredient ids keyed by name."""
    return {name: ing.id for name, ing in menu["ingredients"].items()}


@pytest.fixture
def auth_headers(client):
    """Create a user without a second factor and return auth headers."""
    response = client.post(
        "/api/v1/auth/register",
        json={"username": "bob", "password": "testpass123"},
    )
    assert response.status_code == 201
    data = response.json()
    token = data["access_token"]
    user_id = data["user"]["id"]

    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id, username="bob")


@pytest.fixture
def totp_user(db):
    """Create a user with the TOTP second factor enabled."""
    return create_user(db, "alice", "testpass123", totp_secret=TOTP_SECRET)


@pytest.fixture
def totp_login_headers(client, totp_user):
    """Auth headers for the TOTP user before the second factor is verified."""
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "alice", "password": "testpass123"},
    )
    assert response.status_code == 200
    token = response.json()["access_token"]
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=totp_user.id, username="alice")


@pytest.fixture
def verified_headers(client, totp_user, totp_login_headers):
    """Auth headers for the TOTP user after passing the second factor."""
    response = client.post(
        "/api/v1/auth/totp",
        headers=totp_login_headers,
        json={"code": pyotp.TOTP(TOTP_SECRET).now()},
    )
    assert response.status_code == 200
    token = response.json()["access_token"]
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=totp_user.id, username="alice")
