"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for authentication, authorization,
admin attribution, and the submission deadline. All routers import
from here instead of defining their own auth logic.

Business Rules:
- get_user returns None if not logged in (non-throwing)
- require_user raises 401 if not logged in, 403 if deactivated
- require_admin raises 403 if user.role != "ADMIN"
- require_student raises 403 for admins (voting, quotes, photos are student-only)
- require_open_deadline raises 403 once the global deadline has passed
- get_admin_alias reads the alias cookie pair; expired or "unknown" → None

Called by: all routers
Depends on: models, database, services/audit_service, services/deadline_service
"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .constants import Role
from .database import get_db
from .models import User
from .services.audit_service import alias_from_cookies
from .services.deadline_service import is_deadline_passed

log = logging.getLogger(__name__)

MSG_NOT_AUTHENTICATED = "Nicht authentifiziert."
MSG_ADMIN_REQUIRED = "Zugriff verweigert. Admin-Rechte erforderlich."
MSG_STUDENT_ONLY = "Nur für Schüler verfügbar."
MSG_DEADLINE_PASSED = "Die Abgabefrist ist abgelaufen."
MSG_DEACTIVATED = "Dein Konto wurde deaktiviert."


# ── Authentication ────────────────────────────────────────────────────


def get_user(request: Request, db: Session) -> User | None:
    """Return current user from session, or None if not logged in."""
    uid = request.session.get("user_id")
    if not uid:
        return None
    return db.get(User, uid)


def require_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: raises 401 if no authenticated user, 403 if deactivated."""
    user = get_user(request, db)
    if not user:
        raise HTTPException(401, MSG_NOT_AUTHENTICATED)
    if not user.active:
        request.session.clear()
        raise HTTPException(403, MSG_DEACTIVATED)
    return user


def is_admin(user: User) -> bool:
    """Check if user has admin privileges (by role)."""
    return user.role == Role.ADMIN


def require_admin(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: raises 403 if user is not an admin."""
    user = require_user(request, db)
    if not is_admin(user):
        raise HTTPException(403, MSG_ADMIN_REQUIRED)
    return user


def require_student(request: Request, db: Session = Depends(get_db)) -> User:
    """Dependency: raises 403 if user is not a student."""
    user = require_user(request, db)
    if user.role != Role.STUDENT:
        raise HTTPException(403, MSG_STUDENT_ONLY)
    return user


# ── Deadline ──────────────────────────────────────────────────────────


def require_open_deadline(db: Session = Depends(get_db)) -> None:
    """Dependency: raises 403 once the submission deadline has passed."""
    if is_deadline_passed(db):
        raise HTTPException(403, MSG_DEADLINE_PASSED)


# ── Admin attribution ─────────────────────────────────────────────────


def get_admin_alias(request: Request) -> str | None:
    """Dependency: alias for audit entries, from the timed alias cookie."""
    return alias_from_cookies(request.cookies)


# ── Service results ───────────────────────────────────────────────────


def unwrap(result: dict) -> dict:
    """Turn a service error dict ({"error", "status"}) into an HTTPException."""
    if "error" in result:
        raise HTTPException(result.get("status", 400), result["error"])
    return result
