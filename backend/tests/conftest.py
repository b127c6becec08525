import os
import tempfile
from decimal import Decimal

# point the app at a scratch database before anything imports storefront.config
_TMP = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "test.db")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOCKS_DIR"] = _TMP

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from storefront.db import SessionLocal, init_db  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.user import ROLE_ADMIN, ROLE_USER, User  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client():
    # a new client per test so cart and checkout cookies never leak between tests
    return TestClient(app)


@pytest.fixture
def make_product(db):
    def _make(slug, price="10.00", stock=10, name=None, category="pantry", **extra):
        p = Product(
            slug=slug,
            name=name or slug.replace("-", " ").title(),
            price=Decimal(price),
            stock=stock,
            category=category,
            **extra,
        )
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make


@pytest.fixture
def make_user(db):
    def _make(email, name="Test User", role=ROLE_USER):
        u = User(email=email, name=name, role=role)
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture
def customer(make_user):
    return make_user("jane@example.com", name="Jane Doe")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", name="Admin", role=ROLE_ADMIN)


def auth(user) -> dict:
    return {"X-User-Id": str(user.id)}


ADDRESS = {
    "full_name": "Jane Doe",
    "street": "1 Market Street",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
    "country": "US",
    "phone": "5551234567",
}
