import pytest
from fastapi.testclient import TestClient

import health
from main import app


class PingingDb:
    def __init__(self, fail=False):
        self.fail = fail

    def command(self, name):
        if self.fail:
            raise ConnectionError("server selection timeout")
        return {"ok": 1.0}


@pytest.fixture
def serve():
    def _serve(db):
        app.dependency_overrides[health.current_db] = lambda: db
        return TestClient(app).get("/api/health")

    yield _serve
    app.dependency_overrides.clear()


@pytest.mark.parametrize("db, expected", [
    (None, "Not configured"),
    (PingingDb(), "Connected"),
    (PingingDb(fail=True), "Disconnected"),
])
def test_health_reports_database(serve, db, expected):
    resp = serve(db)
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    assert body["database"] == expected
    assert body["uptime"] >= 0
    assert body["memory"]["maxRssMb"] > 0


def test_root_and_test_endpoints():
    client = TestClient(app)
    assert client.get("/").status_code == 200
    assert "database" in client.get("/test").json()


def test_unknown_route_uses_error_envelope():
    resp = TestClient(app).get("/api/nope")
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_startup_creates_indexes(monkeypatch):
    import mongomock

    import main

    db = mongomock.MongoClient()["ott_catalog_startup"]
    monkeypatch.setattr(main, "db", db)
    with TestClient(app):
        pass
    assert db["user"].index_information()["email_1"]["unique"] is True
    assert "platform_1_title_1_year_1" in db["content"].index_information()
