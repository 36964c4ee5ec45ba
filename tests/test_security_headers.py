"""
tests/test_security_headers.py — Tests for security headers on responses

Validates that the request_id_middleware in main.py sets the expected
security headers on every response, errors included.

Called by: pytest
Depends on: abibuch.main (request_id_middleware)
"""

import pytest


def test_x_content_type_options(anon_client):
    """X-Content-Type-Options: nosniff prevents MIME sniffing."""
    resp = anon_client.get("/health")
    assert resp.headers.get("X-Content-Type-Options") == "nosniff"


def test_x_frame_options(anon_client):
    resp = anon_client.get("/health")
    assert resp.headers.get("X-Frame-Options") == "DENY"


def test_referrer_policy(anon_client):
    resp = anon_client.get("/health")
    assert resp.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"


@pytest.mark.parametrize("path", ["/api/auth/me", "/api/admin/users", "/nonexistent"])
def test_headers_on_error_responses(anon_client, path):
    resp = anon_client.get(path)
    assert resp.status_code >= 400
    assert resp.headers.get("X-Content-Type-Options") == "nosniff"
    assert resp.headers.get("X-Frame-Options") == "DENY"


def test_session_cookie_is_httponly(anon_client, student_user):
    resp = anon_client.post("/api/auth/login", json={"email": student_user.email, "password": "geheim123"})
    cookie = resp.headers.get("set-cookie", "")
    assert "session=" in cookie
    assert "httponly" in cookie.lower()
    assert "samesite=lax" in cookie.lower()
