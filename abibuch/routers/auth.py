"""
routers/auth.py — Registration, login, logout and account settings

Business Rules:
- Registration only for whitelisted students (school email domain)
- Login errors never reveal whether the email exists or is deactivated
- Session stores user_id and role
- Login and registration are rate limited per client IP

Called by: main.py (router mount)
Depends on: services/auth_service, schemas/auth, dependencies
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import require_user, unwrap
from ..models import User
from ..rate_limit import limiter
from ..schemas.auth import LoginRequest, PasswordChange, ProfileUpdate, RegisterRequest
from ..services import auth_service

log = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

MSG_INVALID_LOGIN = "E-Mail oder Passwort ist falsch."


def _start_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session["user_id"] = user.id
    request.session["role"] = user.role


@router.post("/api/auth/register", status_code=201)
@limiter.limit(settings.rate_limit_login)
async def register(payload: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    user = unwrap(auth_service.register_student(db, payload.email, payload.password))["user"]
    _start_session(request, user)
    return {"message": "Registrierung erfolgreich.", "user": auth_service.serialize_user(user)}


@router.post("/api/auth/login")
@limiter.limit(settings.rate_limit_login)
async def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = auth_service.authenticate(db, payload.email, payload.password)
    if not user:
        log.info(f"Failed login for {payload.email}")
        raise HTTPException(401, MSG_INVALID_LOGIN)
    _start_session(request, user)
    return {"message": "Anmeldung erfolgreich.", "user": auth_service.serialize_user(user)}


@router.post("/api/auth/logout")
async def logout(request: Request):
    request.session.clear()
    return {"message": "Abgemeldet."}


@router.get("/api/auth/me")
async def me(user: User = Depends(require_user)):
    return {"user": auth_service.serialize_user(user)}


# ── Settings ─────────────────────────────────────────────────────────


@router.patch("/api/settings/profile")
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return unwrap(auth_service.update_own_profile(db, user, payload.sent()))


@router.patch("/api/settings/password")
async def change_password(
    payload: PasswordChange,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return unwrap(auth_service.change_password(db, user, payload.current_password, payload.new_password))
