"""
test_middleware.py — Tests for request/response middleware and error bodies

Verifies request ID generation, the health endpoint, and the structured
ErrorResponse body produced by the exception handlers in main.py.

Called by: pytest
Depends on: abibuch/main.py (middleware, handlers), tests/conftest.py
"""

from abibuch.config import APP_VERSION


def test_request_id_header_present(anon_client):
    """Every response should include X-Request-ID."""
    resp = anon_client.get("/health")
    assert len(resp.headers["X-Request-ID"]) == 8  # uuid4().hex[:8]


def test_request_id_unique_per_request(anon_client):
    id1 = anon_client.get("/health").headers["X-Request-ID"]
    id2 = anon_client.get("/health").headers["X-Request-ID"]
    assert id1 != id2


def test_health_returns_ok(anon_client):
    resp = anon_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": APP_VERSION}


def test_404_error_body(anon_client):
    """Unknown routes use the same error shape and carry the request ID."""
    resp = anon_client.get("/nonexistent-route-xyz")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status_code"] == 404
    assert body["request_id"] == resp.headers["X-Request-ID"]
    assert set(body) == {"error", "status_code", "request_id", "detail"}


def test_http_exception_body(anon_client):
    resp = anon_client.get("/api/auth/me")
    assert resp.json() == {
        "error": "Nicht authentifiziert.",
        "status_code": 401,
        "request_id": resp.headers["X-Request-ID"],
        "detail": None,
    }


def test_validation_error_is_400_with_first_message(anon_client):
    """Pydantic errors become 400 with the German message, prefix stripped."""
    resp = anon_client.post("/api/auth/login", json={"email": "", "password": "x"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Bitte gib deine E-Mail-Adresse ein."
    assert body["detail"][0]["loc"] == ["body", "email"]


def test_missing_body_field(anon_client):
    resp = anon_client.post("/api/auth/login", json={"email": "a@lessing-ffm.net"})
    assert resp.status_code == 400
    assert resp.json()["detail"][0]["loc"] == ["body", "password"]
