"""
routers/admin_steckbrief.py — Steckbrief fields, overview and feedback

Business Rules:
- Fields are never deleted; DELETE answers 405 and points to deactivation
- key and type cannot change after creation
- Feedback sends a profile back to DRAFT

Called by: main.py (router mount)
Depends on: services/steckbrief_field_service, services/steckbrief_service
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..constants import AuditAction
from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, unwrap
from ..models import User
from ..schemas.admin import FeedbackUpdate, FieldCreate, FieldReorder, FieldUpdate
from ..services import steckbrief_field_service, steckbrief_service
from ..services.audit_service import log_admin_action

log = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


# ── Fields ───────────────────────────────────────────────────────────


@router.get("/api/admin/steckbrief-fields")
async def list_fields(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"fields": steckbrief_field_service.list_fields(db)}


@router.post("/api/admin/steckbrief-fields", status_code=201)
async def create_field(
    payload: FieldCreate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(steckbrief_field_service.create_field(db, payload.model_dump(mode="json"), alias))


@router.patch("/api/admin/steckbrief-fields/reorder")
async def reorder_fields(
    payload: FieldReorder,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    orders = [o.model_dump() for o in payload.field_orders]
    return steckbrief_field_service.reorder_fields(db, orders, alias)


@router.patch("/api/admin/steckbrief-fields/{field_id}")
async def update_field(
    field_id: int,
    payload: FieldUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(steckbrief_field_service.update_field(db, field_id, payload.sent(), alias))


@router.delete("/api/admin/steckbrief-fields/{field_id}")
async def delete_field(field_id: int, user: User = Depends(require_admin)):
    raise HTTPException(405, "Felder können nicht gelöscht werden. Verwende stattdessen die Deaktivierung.")


# ── Profiles ─────────────────────────────────────────────────────────


@router.get("/api/admin/steckbriefe")
async def steckbrief_overview(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"students": steckbrief_service.admin_overview(db)}


@router.get("/api/admin/steckbriefe/{profile_id}")
async def steckbrief_detail(profile_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(steckbrief_service.admin_profile_detail(db, profile_id))


@router.patch("/api/admin/steckbriefe/{profile_id}/feedback")
async def set_feedback(
    profile_id: int,
    payload: FeedbackUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    result = unwrap(steckbrief_service.set_feedback(db, profile_id, payload.feedback))
    profile = result["profile"]
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="Profile",
        entity_id=profile.id,
        entity_name=profile.user.full_name,
        old_values=result["old"],
        new_values={"status": profile.status, "feedback": profile.feedback},
    )
    return {"message": "Feedback gespeichert.", "status": profile.status, "feedback": profile.feedback}
