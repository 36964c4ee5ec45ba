"""
routers/admin_audit.py — Audit log, admin aliases, deadline, student feed

Business Rules:
- Audit log pages are capped at 100 entries
- The alias session is two cookies (alias + ms timestamp), valid for
  admin_alias_timeout_minutes
- Deadline changes are audited as SETTINGS; invalid dates → 400

Called by: main.py (router mount)
Depends on: services/audit_service, services/deadline_service,
            services/student_activity_service
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import AuditAction
from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, unwrap
from ..models import User
from ..schemas.admin import AliasCreate, AliasSession, DeadlineUpdate
from ..services import audit_service, deadline_service, student_activity_service

log = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


# ── Audit log ────────────────────────────────────────────────────────


@router.get("/api/admin/audit-logs")
async def list_audit_logs(
    limit: int = Query(50),
    offset: int = Query(0),
    entity: str | None = Query(None),
    alias: str | None = Query(None),
    errors_only: bool = Query(False),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return audit_service.list_audit_logs(
        db, limit=limit, offset=offset, entity=entity or None, alias=alias or None, errors_only=errors_only
    )


# ── Aliases ──────────────────────────────────────────────────────────


@router.get("/api/admin/aliases")
async def list_aliases(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"aliases": audit_service.list_aliases(db)}


@router.post("/api/admin/aliases", status_code=201)
async def create_alias(payload: AliasCreate, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(audit_service.create_alias(db, payload.name))


@router.delete("/api/admin/aliases/{alias_id}")
async def delete_alias(alias_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(audit_service.delete_alias(db, alias_id))


@router.post("/api/admin/alias-session")
async def set_alias_session(payload: AliasSession, user: User = Depends(require_admin)):
    cookies = audit_service.alias_cookie_values(payload.alias)
    value = cookies[audit_service.ADMIN_ALIAS_COOKIE]
    response = JSONResponse({"alias": None if value == audit_service.UNKNOWN_ALIAS else value})
    max_age = settings.admin_alias_timeout_minutes * 60
    for name, cookie_value in cookies.items():
        response.set_cookie(name, cookie_value, max_age=max_age, httponly=True, samesite="lax")
    return response


# ── Deadline ─────────────────────────────────────────────────────────


@router.get("/api/admin/deadline")
async def get_deadline(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return deadline_service.deadline_info(db)


@router.patch("/api/admin/deadline")
async def update_deadline(
    payload: DeadlineUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    try:
        parsed = deadline_service.parse_deadline(payload.deadline)
    except ValueError:
        raise HTTPException(400, "Ungültiges Datum.")
    old, new = deadline_service.set_deadline(db, parsed)
    db.commit()
    audit_service.log_admin_action(
        db,
        alias=alias,
        action=AuditAction.SETTINGS,
        entity="AppSettings",
        entity_name="Deadline",
        old_values={"deadline": old.isoformat() if old else None},
        new_values={"deadline": new.isoformat() if new else None},
    )
    return {"message": "Deadline gespeichert.", **deadline_service.deadline_info(db)}


# ── Student activity ─────────────────────────────────────────────────


@router.get("/api/admin/student-activities")
async def list_student_activities(
    limit: int = Query(50),
    offset: int = Query(0),
    user_id: int | None = Query(None),
    entity: str | None = Query(None),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return student_activity_service.list_activities(
        db, limit=limit, offset=offset, user_id=user_id, entity=entity or None
    )
