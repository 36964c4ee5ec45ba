"""
routers/steckbrief.py — Student Steckbrief and contact info

The save endpoint takes multipart form data:
  {key}            text value of a TEXT / TEXTAREA field
  image_{key}      new file for a SINGLE_IMAGE field
  existing_{key}   JSON list of kept URLs of a MULTI_IMAGE field
  new_{key}        additional files for a MULTI_IMAGE field (repeatable)
Fields that are not sent keep their stored value.

Business Rules:
- Writes are blocked after the deadline (403)
- Only students have a Steckbrief

Called by: main.py (router mount)
Depends on: services/steckbrief_service, services/deadline_service
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from ..constants import FieldType
from ..database import get_db
from ..dependencies import require_open_deadline, require_student, unwrap
from ..models import User
from ..schemas.student import ContactInfoUpdate
from ..services import steckbrief_service
from ..services.deadline_service import deadline_info
from ..services.steckbrief_service import SteckbriefUpdate, parse_kept_images

log = logging.getLogger(__name__)

router = APIRouter(tags=["steckbrief"])


async def _read_file(item) -> bytes | None:
    if isinstance(item, UploadFile) and item.filename:
        return await item.read()
    return None


async def _parse_form(request: Request, db: Session) -> SteckbriefUpdate:
    form = await request.form()
    payload = SteckbriefUpdate()
    for f in steckbrief_service.active_fields(db):
        if f.type in (FieldType.TEXT, FieldType.TEXTAREA):
            if f.key in form:
                value = form.get(f.key)
                payload.texts[f.key] = value.strip() if isinstance(value, str) else ""
        elif f.type == FieldType.SINGLE_IMAGE:
            content = await _read_file(form.get(f"image_{f.key}"))
            if content is not None:
                payload.single_images[f.key] = content
        elif f.type == FieldType.MULTI_IMAGE:
            raw = form.get(f"existing_{f.key}")
            if raw is not None:
                kept = parse_kept_images(raw if isinstance(raw, str) else None)
                if kept is None:
                    raise HTTPException(400, f"{f.label}: Ungültige Bildliste.")
                payload.kept_images[f.key] = kept
            files = [await _read_file(item) for item in form.getlist(f"new_{f.key}")]
            files = [c for c in files if c]
            if files:
                payload.new_images[f.key] = files
    return payload


@router.get("/api/steckbrief")
async def get_steckbrief(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return {**steckbrief_service.get_steckbrief(db, user), **deadline_info(db)}


@router.patch("/api/steckbrief", dependencies=[Depends(require_open_deadline)])
async def save_steckbrief(request: Request, user: User = Depends(require_student), db: Session = Depends(get_db)):
    payload = await _parse_form(request, db)
    return unwrap(steckbrief_service.update_steckbrief(db, user, payload))


@router.post("/api/steckbrief/submit", dependencies=[Depends(require_open_deadline)])
async def submit_steckbrief(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(steckbrief_service.submit_steckbrief(db, user))


@router.post("/api/steckbrief/retract", dependencies=[Depends(require_open_deadline)])
async def retract_steckbrief(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(steckbrief_service.retract_steckbrief(db, user))


# ── Contact info ─────────────────────────────────────────────────────


@router.get("/api/contact-info")
async def get_contact_info(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return steckbrief_service.get_contact_info(db, user)


@router.patch("/api/contact-info", dependencies=[Depends(require_open_deadline)])
async def update_contact_info(
    payload: ContactInfoUpdate,
    user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    return unwrap(
        steckbrief_service.update_contact_info(
            db, user, payload.contact_email, payload.contact_phone, payload.contact_insta
        )
    )
