"""
Pytest configuration and fixtures for the API tests.
"""

import os

# The app creates its tables at import time; keep that off the disk
os.environ.setdefault("DATABASE_URL", "sqlite://")

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from utils.database import Base, get_db
from utils.auth import create_access_token, get_password_hash
from models.user import User, UserRole
from models.table_management import Table, TableStatus
from models.menu_management import MenuItem, MenuCategory


# SQLite in-memory database shared by every connection of a test
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_table_numbers = itertools.count(100)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Tables are dropped afterwards so every test starts empty.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session, monkeypatch):
    """Test client whose requests share the test session."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # The websocket opens its own short-lived session
    monkeypatch.setattr("routes.notifications.SessionLocal", TestingSessionLocal)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(db_session, name, email, role, password="secret123", is_active=True):
    user = User(
        name=name,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest.fixture
def superadmin(db_session):
    return make_user(db_session, "Ana Admin", "admin@test.com", UserRole.SUPERADMIN)


@pytest.fixture
def waiter(db_session):
    return make_user(db_session, "Walter Waiter", "waiter@test.com", UserRole.WAITER)


@pytest.fixture
def admin_headers(superadmin):
    return headers_for(superadmin)


@pytest.fixture
def waiter_headers(waiter):
    return headers_for(waiter)


@pytest.fixture
def make_table(db_session):
    """Factory for tables; numbers are unique unless given."""
    def _make_table(table_number=None, capacity=4, section="main", status=TableStatus.AVAILABLE):
        table = Table(
            table_number=table_number if table_number is not None else next(_table_numbers),
            capacity=capacity,
            section=section,
            status=status,
        )
        db_session.add(table)
        db_session.commit()
        db_session.refresh(table)
        return table
    return _make_table


@pytest.fixture
def make_menu_item(db_session):
    """Factory for menu items."""
    def _make_menu_item(name="Burger", price=10.0, category=MenuCategory.MAIN, is_available=True, is_special=False):
        item = MenuItem(
            name=name,
            description=f"{name} description",
            price=price,
            category=category,
            is_available=is_available,
            is_special=is_special,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item
    return _make_menu_item
