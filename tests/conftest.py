import os
import tempfile
from decimal import Decimal

# Point the service at a throwaway SQLite database before it is imported
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["TELEMETRY_ENABLED"] = "false"
os.environ["SEED_DATA"] = "false"

import pytest
from fastapi.testclient import TestClient

from storefront.database import SessionLocal, engine
from storefront.models import Base, Product, User


@pytest.fixture(autouse=True)
def setup_db():
    """Recreate the schema around every test."""
    Base.metadata.create_all(bind=engine)

    yield

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    from storefront.main import app

    return TestClient(app)


@pytest.fixture
def user():
    with SessionLocal() as db:
        user = User(username="u1", email="u1@example.com")
        db.add(user)
        db.commit()
        return user.id


@pytest.fixture
def make_product():
    """Insert a product and return its id."""

    def _make_product(price="10.00", stock=5, name="Widget", category="Gadgets"):
        with SessionLocal() as db:
            product = Product(
                name=name,
                price=Decimal(price),
                stock_quantity=stock,
                category=category
            )
            db.add(product)
            db.commit()
            return product.id

    return _make_product
