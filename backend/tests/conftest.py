"""Shared fixtures: an in-memory SQLite catalog, seeded rows and an API client."""

import itertools
import uuid

import pytest
from fastapi.testclient import TestClient

from catalog.core.config import Settings
from catalog.db.base import init_db
from catalog.db.models import Category, Product
from catalog.db.session import build_engine, build_session_factory
from catalog.main import create_app


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


def _category(db, name: str) -> Category:
    category = Category(
        id=str(uuid.uuid4()),
        name=name,
        slug=name.lower().replace(" ", "-"),
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def category(session) -> Category:
    return _category(session, "Electronics")


@pytest.fixture
def other_category(session) -> Category:
    return _category(session, "Home Office")


@pytest.fixture
def make_product(session, category):
    """Insert products directly, bypassing the mutation service."""
    counter = itertools.count(1)

    def _make(**overrides) -> Product:
        n = next(counter)
        tags = overrides.pop("tags", [])
        values = {
            "title": f"Product {n}",
            "description": "A catalog item",
            "slug": f"product-{n}",
            "price": 10.0,
            "stock_quantity": 5,
            "category_id": category.id,
            "images": [],
        }
        values.update(overrides)
        values.setdefault("in_stock", values["stock_quantity"] > 0)
        product = Product(**values)
        product.tags = set(tags)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="test", database_url="sqlite://", log_level="WARNING")


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def product_payload(category) -> dict:
    return {
        "title": "iPhone 15",
        "description": "Latest iPhone",
        "slug": "iphone-15",
        "price": 999.0,
        "original_price": 1099.0,
        "stock_quantity": 10,
        "category_id": category.id,
        "brand": "Apple",
        "images": ["https://cdn.example.com/iphone-front.jpg"],
        "tags": ["phone", "apple"],
    }
