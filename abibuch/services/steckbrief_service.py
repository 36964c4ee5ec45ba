"""
steckbrief_service.py — Student profiles built from admin-defined fields

Business Rules:
- A profile is created lazily on first access
- Text values are validated against the field's max_length on save
- Required fields are only enforced on submit
- Single image: a new upload replaces (and deletes) the old file
- Multi image: the client sends the kept URLs plus new files; dropped URLs
  are deleted from disk; total count <= max_files (default 3)
- Every image is validated before anything is written to disk
- Editing a SUBMITTED profile reverts it to DRAFT (logged as RETRACT)
- Admin feedback returns the profile to DRAFT so the student can revise

Called by: routers/steckbrief.py, routers/admin_steckbrief.py
Depends on: models, services/storage_service, services/student_activity_service,
            utils/file_validation
"""

import json
import logging
import re
from dataclasses import dataclass, field as dc_field
from datetime import datetime, timezone

from sqlalchemy.orm import Session, joinedload

from ..constants import FieldType, Role, Status, StudentAction
from ..models import Profile, SteckbriefField, SteckbriefValue, Student, User
from ..utils.file_validation import validate_image
from .auth_service import ensure_profile
from .storage_service import delete_upload, save_upload
from .student_activity_service import log_student_activity

log = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 3
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TEXT_TYPES = (FieldType.TEXT, FieldType.TEXTAREA)


@dataclass
class SteckbriefUpdate:
    """Parsed multipart payload of a save request."""

    texts: dict[str, str] = dc_field(default_factory=dict)
    single_images: dict[str, bytes] = dc_field(default_factory=dict)
    kept_images: dict[str, list[str]] = dc_field(default_factory=dict)
    new_images: dict[str, list[bytes]] = dc_field(default_factory=dict)


def parse_kept_images(raw: str | None) -> list[str] | None:
    """Decode the existing_{key} JSON list; None when malformed."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, list) or not all(isinstance(x, str) for x in data):
        return None
    return data


def active_fields(db: Session) -> list[SteckbriefField]:
    return (
        db.query(SteckbriefField)
        .filter(SteckbriefField.active.is_(True))
        .order_by(SteckbriefField.order, SteckbriefField.id)
        .all()
    )


def serialize_field(f: SteckbriefField) -> dict:
    return {
        "id": f.id,
        "key": f.key,
        "type": f.type,
        "label": f.label,
        "placeholder": f.placeholder,
        "max_length": f.max_length,
        "max_files": f.max_files,
        "rows": f.rows,
        "required": f.required,
        "order": f.order,
        "active": f.active,
    }


def empty_value(f: SteckbriefField):
    if f.type == FieldType.SINGLE_IMAGE:
        return None
    if f.type == FieldType.MULTI_IMAGE:
        return []
    return ""


def values_map(profile: Profile, fields: list[SteckbriefField]) -> dict:
    stored = {v.field_id: v for v in profile.values}
    out = {}
    for f in fields:
        v = stored.get(f.id)
        if v is None:
            out[f.key] = empty_value(f)
        elif f.type == FieldType.SINGLE_IMAGE:
            out[f.key] = v.image_value or None
        elif f.type == FieldType.MULTI_IMAGE:
            out[f.key] = list(v.images_value or [])
        else:
            out[f.key] = v.text_value or ""
    return out


def get_steckbrief(db: Session, user: User) -> dict:
    profile = ensure_profile(db, user)
    db.commit()
    fields = active_fields(db)
    return {
        "profile": {
            "id": profile.id,
            "status": profile.status,
            "feedback": profile.feedback,
            "submitted_at": profile.submitted_at.isoformat() if profile.submitted_at else None,
        },
        "fields": [serialize_field(f) for f in fields],
        "values": values_map(profile, fields),
    }


# ── Save ─────────────────────────────────────────────────────────────


def _validate(fields: list[SteckbriefField], payload: SteckbriefUpdate, current: dict) -> str | None:
    """`current` maps field key to the stored image list of multi image fields."""
    for f in fields:
        if f.type in TEXT_TYPES:
            text = payload.texts.get(f.key, "")
            if f.max_length and len(text) > f.max_length:
                return f"{f.label} darf maximal {f.max_length} Zeichen lang sein."
        elif f.type == FieldType.SINGLE_IMAGE:
            content = payload.single_images.get(f.key)
            if content:
                ok, msg = validate_image(content)
                if not ok:
                    return msg
        elif f.type == FieldType.MULTI_IMAGE:
            new = [c for c in payload.new_images.get(f.key, []) if c]
            max_files = f.max_files or DEFAULT_MAX_FILES
            kept = payload.kept_images.get(f.key, current.get(f.key, []))
            if len(kept) + len(new) > max_files:
                return f"{f.label}: Maximal {max_files} Bilder erlaubt."
            for content in new:
                ok, msg = validate_image(content)
                if not ok:
                    return msg
    return None


def update_steckbrief(db: Session, user: User, payload: SteckbriefUpdate) -> dict:
    profile = ensure_profile(db, user)
    fields = active_fields(db)

    stored = {v.field_id: v for v in profile.values}
    current = {f.key: list(stored[f.id].images_value or []) for f in fields if f.id in stored}
    err = _validate(fields, payload, current)
    if err:
        return {"error": err, "status": 400}

    subdir = f"profiles/{user.id}"
    for f in fields:
        value = stored.get(f.id)
        if value is None:
            value = SteckbriefValue(profile_id=profile.id, field_id=f.id, images_value=[])
            db.add(value)

        if f.type in TEXT_TYPES:
            if f.key in payload.texts:
                value.text_value = payload.texts[f.key] or None
        elif f.type == FieldType.SINGLE_IMAGE:
            content = payload.single_images.get(f.key)
            if content:
                _, ext = validate_image(content)
                delete_upload(value.image_value)
                value.image_value = save_upload(content, subdir, f.key, ext)
        elif f.type == FieldType.MULTI_IMAGE:
            existing = list(value.images_value or [])
            kept = [url for url in payload.kept_images.get(f.key, existing) if url in existing]
            for url in existing:
                if url not in kept:
                    delete_upload(url)
            for content in payload.new_images.get(f.key, []):
                if not content:
                    continue
                _, ext = validate_image(content)
                kept.append(save_upload(content, subdir, f.key, ext))
            value.images_value = kept

    was_submitted = profile.status == Status.SUBMITTED
    if was_submitted:
        profile.status = Status.DRAFT.value
        profile.submitted_at = None
    profile.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(profile)

    if was_submitted:
        log_student_activity(db, user.id, StudentAction.RETRACT, "Steckbrief")
    return {
        "message": "Steckbrief gespeichert.",
        "status": profile.status,
        "values": values_map(profile, fields),
    }


# ── Submit / retract ─────────────────────────────────────────────────


def missing_required(fields: list[SteckbriefField], values: dict) -> list[str]:
    errors = []
    for f in fields:
        if not f.required:
            continue
        v = values.get(f.key)
        if f.type in TEXT_TYPES:
            empty = not v or not v.strip()
        else:
            empty = not v
        if empty:
            errors.append(f"{f.label} ist ein Pflichtfeld.")
    return errors


def submit_steckbrief(db: Session, user: User) -> dict:
    profile = ensure_profile(db, user)
    if profile.status != Status.DRAFT:
        return {"error": "Der Steckbrief wurde bereits eingereicht.", "status": 400}
    fields = active_fields(db)
    missing = missing_required(fields, values_map(profile, fields))
    if missing:
        return {"error": missing[0], "status": 400, "errors": missing}

    profile.status = Status.SUBMITTED.value
    profile.submitted_at = datetime.now(timezone.utc)
    db.commit()
    log_student_activity(db, user.id, StudentAction.SUBMIT, "Steckbrief")
    return {"message": "Steckbrief erfolgreich eingereicht.", "status": profile.status}


def retract_steckbrief(db: Session, user: User) -> dict:
    profile = ensure_profile(db, user)
    if profile.status != Status.SUBMITTED:
        return {"error": "Der Steckbrief ist nicht eingereicht.", "status": 400}
    profile.status = Status.DRAFT.value
    profile.submitted_at = None
    profile.feedback = None
    db.commit()
    log_student_activity(db, user.id, StudentAction.RETRACT, "Steckbrief")
    return {"message": "Steckbrief zurückgezogen.", "status": profile.status}


# ── Contact info ─────────────────────────────────────────────────────


def get_contact_info(db: Session, user: User) -> dict:
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    return {
        "contact_email": (profile.contact_email if profile else None) or "",
        "contact_phone": (profile.contact_phone if profile else None) or "",
        "contact_insta": (profile.contact_insta if profile else None) or "",
    }


def update_contact_info(
    db: Session, user: User, email: str | None, phone: str | None, insta: str | None
) -> dict:
    email = (email or "").strip()
    if email and not EMAIL_RE.match(email):
        return {"error": "Bitte gib eine gültige E-Mail-Adresse ein.", "status": 400}
    profile = ensure_profile(db, user)
    profile.contact_email = email or None
    profile.contact_phone = (phone or "").strip() or None
    profile.contact_insta = (insta or "").strip() or None
    db.commit()
    return {"message": "Kontaktdaten gespeichert.", **get_contact_info(db, user)}


# ── Admin ────────────────────────────────────────────────────────────


def admin_overview(db: Session) -> list[dict]:
    """Every active student with registration state and profile progress."""
    fields = active_fields(db)
    students = (
        db.query(Student)
        .options(joinedload(Student.user))
        .filter(Student.active.is_(True))
        .order_by(Student.last_name, Student.first_name)
        .all()
    )
    out = []
    for s in students:
        user = s.user
        profile = user.profile if user is not None and user.role == Role.STUDENT else None
        filled = 0
        if profile is not None:
            filled = sum(1 for v in values_map(profile, fields).values() if v)
        out.append({
            "student_id": s.id,
            "first_name": s.first_name,
            "last_name": s.last_name,
            "registered": user is not None,
            "profile_id": profile.id if profile else None,
            "status": profile.status if profile else None,
            "feedback": profile.feedback if profile else None,
            "submitted_at": profile.submitted_at.isoformat() if profile and profile.submitted_at else None,
            "filled_fields": filled,
            "total_fields": len(fields),
        })
    return out


def admin_profile_detail(db: Session, profile_id: int) -> dict:
    profile = db.get(Profile, profile_id)
    if not profile:
        return {"error": "Steckbrief nicht gefunden.", "status": 404}
    fields = active_fields(db)
    return {
        "profile": {
            "id": profile.id,
            "user_id": profile.user_id,
            "name": profile.user.full_name,
            "status": profile.status,
            "feedback": profile.feedback,
        },
        "fields": [serialize_field(f) for f in fields],
        "values": values_map(profile, fields),
    }


def set_feedback(db: Session, profile_id: int, feedback: str | None) -> dict:
    profile = db.get(Profile, profile_id)
    if not profile:
        return {"error": "Steckbrief nicht gefunden.", "status": 404}
    old = {"status": profile.status, "feedback": profile.feedback}
    profile.feedback = (feedback or "").strip() or None
    profile.status = Status.DRAFT.value
    profile.submitted_at = None
    db.commit()
    return {"profile": profile, "old": old}
