"""
routers/admin_users.py — Admin management of login accounts

Business Rules:
- Admins cannot deactivate, demote or delete themselves
- Password resets are audited without the password
- Every change is attributed to the alias cookie

Called by: main.py (router mount)
Depends on: services/people_service, schemas/admin, dependencies
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, unwrap
from ..models import User
from ..schemas.admin import PasswordReset, UserCreate, UserUpdate
from ..services import people_service
from ..services.auth_service import serialize_user

log = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.get("/api/admin/users")
async def list_users(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"users": people_service.list_users(db)}


@router.post("/api/admin/users", status_code=201)
async def create_user(
    payload: UserCreate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.create_user(db, payload.model_dump(mode="json"), alias))


@router.get("/api/admin/users/{user_id}")
async def get_user(user_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    target = db.get(User, user_id)
    if not target:
        raise HTTPException(404, people_service.MSG_USER_NOT_FOUND)
    return {"user": serialize_user(target)}


@router.patch("/api/admin/users/{user_id}")
async def update_user(
    user_id: int,
    payload: UserUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.update_user(db, user_id, payload.sent(), user, alias))


@router.post("/api/admin/users/{user_id}/reset-password")
async def reset_password(
    user_id: int,
    payload: PasswordReset,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.reset_password(db, user_id, payload.password, alias))


@router.delete("/api/admin/users/{user_id}")
async def delete_user(
    user_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.delete_user(db, user_id, user, alias))
