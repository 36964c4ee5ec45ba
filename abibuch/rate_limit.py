"""Shared rate limiter (in-memory, per client IP).

Login and registration are the only endpoints with an explicit limit;
everything else falls under the default limit. Disabled in tests.
"""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled and not os.environ.get("TESTING"),
)
