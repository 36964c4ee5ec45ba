"""
tests/test_rate_limiting.py — Tests for rate limiting configuration

Covers: slowapi limiter setup (per client IP), the limits on login and
registration, and that limiting is off under TESTING.

Called by: pytest
Depends on: abibuch.rate_limit, abibuch.routers.auth
"""

from slowapi.util import get_remote_address

from abibuch.config import settings
from abibuch.rate_limit import limiter


def test_limiter_uses_remote_address():
    """Key function is get_remote_address (IP-based limiting)."""
    assert limiter._key_func is get_remote_address


def test_limiter_disabled_in_tests():
    assert limiter.enabled is False


def test_default_login_limit():
    assert settings.rate_limit_login == "10/minute"


def test_login_not_limited_under_testing(anon_client, student_user):
    """More logins than the per-minute limit still succeed while TESTING is set."""
    for _ in range(12):
        resp = anon_client.post("/api/auth/login", json={"email": student_user.email, "password": "falsch123"})
        assert resp.status_code == 401


def test_app_has_limiter_state():
    from abibuch.main import app

    assert app.state.limiter is limiter
