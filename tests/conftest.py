"""Pytest fixtures for Garden Shop tests."""

import os

# Settings are read at import time; point them at an in-memory database first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from common.security import create_token
from modules.user.models import User, WishlistItem  # noqa: F401
from modules.catalog.models import Product
from modules.review.models import Review  # noqa: F401
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.order.models import Order, OrderItem, OrderStatusLog  # noqa: F401


@pytest.fixture
def engine():
    """Fresh in-memory SQLite schema per test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_fk(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """TestClient whose requests share the test session."""
    from main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==========================================
# Factories
# ==========================================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="user", full_name=None, email=None, is_active=True):
        counter["n"] += 1
        user = User(
            full_name=full_name or f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            phone=f"90000000{counter['n']:02d}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(name=None, price="100.00", stock=10, is_available=True, category="Plant",
              old_price=None, featured=False, trending=False):
        counter["n"] += 1
        product = Product(
            name=name or f"Product {counter['n']}",
            description="A fine garden product",
            price=Decimal(str(price)),
            old_price=Decimal(str(old_price)) if old_price is not None else None,
            category=category,
            stock=stock,
            is_available=is_available,
            featured=featured,
            trending=trending,
            image_url=f"https://img.example.com/{counter['n']}.jpg",
            image_public_id=f"garden/{counter['n']}",
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def user(make_user):
    return make_user(full_name="Asha Verma", email="asha@example.com")


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", full_name="Shop Admin", email="admin@example.com")


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_token({'sub': str(user.id)})}"}


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


ADDRESS = {
    "full_name": "Asha Verma",
    "street": "12 Green Lane",
    "city": "Pune",
    "state": "Maharashtra",
    "zip_code": "411001",
    "phone": "9000000001",
}


@pytest.fixture
def address():
    return dict(ADDRESS)
