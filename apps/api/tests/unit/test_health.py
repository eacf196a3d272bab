import uuid

import pytest
from sqlalchemy.orm import sessionmaker

from storefront.db.session import build_engine, session_scope
from storefront.observability import metrics_store
from storefront.routers import health
from storefront.routers.health import database_dependency_status


@pytest.fixture
def unreachable_sessions(tmp_path):
    # sqlite cannot create a database file inside a directory that does not exist
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'missing' / 'storefront.db'}")
    yield sessionmaker(bind=engine)
    engine.dispose()


def test_liveness_does_not_touch_the_database(client, monkeypatch, unreachable_sessions):
    monkeypatch.setattr(health, "session_scope", unreachable_sessions)

    assert client.get("/health").json() == {"status": "ok"}


def test_readiness_probes_the_storefront_database(client):
    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json()["dependencies"] == [{"name": "database", "status": "ok"}]
    assert metrics_store.counter("readiness_dependency_checked_total") == 1
    assert metrics_store.counter("readiness_dependency_error_total") == 0


def test_database_status_uses_the_shared_session_scope():
    assert database_dependency_status(session_scope) == "ok"


def test_database_status_reports_unreachable_database(unreachable_sessions):
    assert database_dependency_status(unreachable_sessions) == "error"


def test_readiness_degrades_and_counts_failures(client, monkeypatch, unreachable_sessions):
    monkeypatch.setattr(health, "session_scope", unreachable_sessions)

    first = client.get("/ready")
    client.get("/ready")

    assert first.status_code == 503
    assert first.json() == {
        "status": "degraded",
        "dependencies": [{"name": "database", "status": "error"}],
    }
    assert metrics_store.counter("readiness_dependency_checked_total") == 2
    assert metrics_store.counter("readiness_dependency_error_total") == 2


def test_request_id_round_trips_through_middleware(client):
    echoed = client.get("/ready", headers={"X-Request-ID": "checkout-7f3a"})
    generated = client.get("/health")

    assert echoed.headers["X-Request-ID"] == "checkout-7f3a"
    assert uuid.UUID(generated.headers["X-Request-ID"])
    assert metrics_store.counter("http_requests_total") == 2
