"""Health endpoint."""
from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    j = r.json()
    assert j.get("status") == "ok"
    assert j.get("database") in ("ok", "error")
    assert j.get("stripe_configured") is True
    assert j.get("relay_configured") is False
    assert "X-Request-ID" in r.headers
