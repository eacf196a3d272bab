import os
import threading

os.environ.setdefault("STOREFRONT_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("STOREFRONT_TESTING", "true")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import storefront.models  # noqa: E402,F401
from storefront.auth.dependencies import reset_rate_limits  # noqa: E402
from storefront.config import settings  # noqa: E402
from storefront.db.base import Base  # noqa: E402
from storefront.db.session import engine as app_engine  # noqa: E402
from storefront.db.session import get_db  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.observability import metrics_store  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_schema():
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield
    Base.metadata.drop_all(bind=app_engine)


@pytest.fixture(autouse=True)
def reset_db():
    reset_rate_limits()
    Base.metadata.drop_all(bind=app_engine)
    Base.metadata.create_all(bind=app_engine)
    yield


@pytest.fixture(autouse=True)
def reset_metrics_store():
    metrics_store.reset()
    yield


@pytest.fixture
def db_session():
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(db_session):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=app_engine)
    db_session_lock = threading.Lock()

    def override_get_db():
        if db_session_lock.acquire(blocking=False):
            try:
                yield db_session
            finally:
                db_session_lock.release()
            return

        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="session", autouse=True)
def enable_test_auth_bypass():
    original = settings.enable_test_auth_bypass
    settings.enable_test_auth_bypass = True
    yield
    settings.enable_test_auth_bypass = original


@pytest.fixture(scope="session", autouse=True)
def enable_testing_mode():
    original = settings.testing
    settings.testing = True
    yield
    settings.testing = original


@pytest.fixture
def make_product(db_session):
    from storefront.schemas.product import ProductCreate
    from storefront.services.products_service import create_product

    def _make(name: str = "Cold Pressed Coconut Oil", price: float = 450.0, stock: int = 20):
        return create_product(
            db_session,
            ProductCreate(name=name, category="oils", price=price, stock=stock, unit="500ml"),
        )

    return _make
