"""Pytest configuration and fixtures."""

import os

# Must be set before gastro.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gastro.core.rbac import AppRole
from gastro.core.security import create_access_token
from gastro.db.base import Base
from gastro.db.session import get_db
from gastro.main import app
# Import all models to ensure they're registered with Base.metadata
from gastro.models import *
from gastro.services.restaurant_service import add_user, create_restaurant

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    from gastro.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


def make_user(db: Session, email: str, role: AppRole, restaurant_id=None, full_name=None) -> User:
    user = add_user(
        db,
        email=email,
        password="secret123",
        full_name=full_name or email.split("@")[0].title(),
        role=role,
        restaurant_id=restaurant_id,
    )
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user_factory(db_session: Session):
    """Create extra users: ``user_factory(email, role, restaurant_id)``."""
    def _make(email: str, role: AppRole, restaurant_id=None, full_name=None) -> User:
        return make_user(db_session, email, role, restaurant_id, full_name)
    return _make


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def restaurant(db_session: Session) -> Restaurant:
    """A provisioned restaurant with its host owner, tables and settings."""
    result = create_restaurant(
        db_session,
        restaurant_name="Casa Pepe",
        owner_email="host@example.com",
        owner_password="hostpass1",
        owner_name="Pepe Host",
        locale="es",
        currency="EUR",
    )
    return db_session.get(Restaurant, result["restaurant_id"])


@pytest.fixture
def other_restaurant(db_session: Session) -> Restaurant:
    result = create_restaurant(
        db_session,
        restaurant_name="Bar Lola",
        owner_email="lola@example.com",
        owner_password="lolapass1",
        owner_name="Lola Host",
        locale="pt-BR",
        currency="BRL",
    )
    return db_session.get(Restaurant, result["restaurant_id"])


@pytest.fixture
def host_user(db_session: Session, restaurant: Restaurant) -> User:
    return db_session.get(User, restaurant.owner_id)


@pytest.fixture
def admin_user(db_session: Session, restaurant: Restaurant) -> User:
    return make_user(db_session, "admin@example.com", AppRole.ADMIN, restaurant.id, "Ana Admin")


@pytest.fixture
def staff_user(db_session: Session, restaurant: Restaurant) -> User:
    return make_user(db_session, "staff@example.com", AppRole.STAFF, restaurant.id, "Sergio Staff")


@pytest.fixture
def kitchen_user(db_session: Session, restaurant: Restaurant) -> User:
    return make_user(db_session, "cozinha@example.com", AppRole.COZINHA, restaurant.id, "Carla Cocina")


@pytest.fixture
def super_admin(db_session: Session) -> User:
    return make_user(db_session, "root@example.com", AppRole.SUPER_ADMIN, None, "Platform Root")


@pytest.fixture
def host_headers(host_user: User) -> dict:
    return auth_headers_for(host_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def staff_headers(staff_user: User) -> dict:
    return auth_headers_for(staff_user)


@pytest.fixture
def kitchen_headers(kitchen_user: User) -> dict:
    return auth_headers_for(kitchen_user)


@pytest.fixture
def super_admin_headers(super_admin: User) -> dict:
    return auth_headers_for(super_admin)


@pytest.fixture
def tomato(db_session: Session, restaurant: Restaurant) -> Item:
    """10 kg of tomatoes, low at 2 kg."""
    item = Item(
        restaurant_id=restaurant.id,
        name="Tomate",
        unit="kg",
        recipe_unit="g",
        units_per_package=Decimal("1"),
        recipe_units_per_consumption=Decimal("1000"),
        current_stock=Decimal("10"),
        min_stock=Decimal("2"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def beer(db_session: Session, restaurant: Restaurant) -> Item:
    """2 boxes of 24 bottles."""
    item = Item(
        restaurant_id=restaurant.id,
        name="Cerveza",
        unit="cx",
        sub_unit="garrafa",
        units_per_package=Decimal("24"),
        current_stock=Decimal("2"),
        min_stock=Decimal("1"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def salad(db_session: Session, restaurant: Restaurant, tomato: Item) -> Dish:
    """A salad using 250 g of tomato per sale."""
    dish = Dish(
        restaurant_id=restaurant.id,
        name="Ensalada",
        price=Decimal("8.50"),
    )
    dish.sheets = [
        TechnicalSheet(restaurant_id=restaurant.id, item_id=tomato.id, quantity_per_sale=Decimal("250")),
    ]
    db_session.add(dish)
    db_session.commit()
    db_session.refresh(dish)
    return dish


@pytest.fixture
def table_one(db_session: Session, restaurant: Restaurant) -> RestaurantTable:
    return (
        db_session.query(RestaurantTable)
        .filter(RestaurantTable.restaurant_id == restaurant.id, RestaurantTable.table_number == 1)
        .one()
    )
