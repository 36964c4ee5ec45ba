"""
steckbrief_field_service.py — Admin definition of Steckbrief fields

Business Rules:
- key is unique, starts lowercase, letters and digits only, max 50 chars
- key and type never change after creation (stored values depend on them)
- Fields are deactivated instead of deleted
- New fields are appended (order = max + 1)

Called by: routers/admin_steckbrief.py
Depends on: models, services/audit_service, services/ordering
"""

import logging

from sqlalchemy.orm import Session

from ..constants import AuditAction
from ..models import SteckbriefField
from .audit_service import changed_values, log_admin_action, snapshot
from .ordering import apply_reorder, next_order
from .steckbrief_service import serialize_field

log = logging.getLogger(__name__)

EDITABLE_FIELDS = ("label", "placeholder", "max_length", "max_files", "rows", "required", "active")
AUDIT_FIELDS = ("key", "type") + EDITABLE_FIELDS
MSG_NOT_FOUND = "Feld nicht gefunden."


def list_fields(db: Session) -> list[dict]:
    rows = db.query(SteckbriefField).order_by(SteckbriefField.order, SteckbriefField.id).all()
    return [serialize_field(f) for f in rows]


def create_field(db: Session, data: dict, alias: str | None) -> dict:
    if db.query(SteckbriefField).filter(SteckbriefField.key == data["key"]).first():
        return {"error": "Ein Feld mit diesem Key existiert bereits.", "status": 400}
    field = SteckbriefField(
        key=data["key"],
        type=data["type"],
        label=data["label"].strip(),
        placeholder=(data.get("placeholder") or "").strip() or None,
        max_length=data.get("max_length"),
        max_files=data.get("max_files"),
        rows=data.get("rows"),
        required=bool(data.get("required")),
        order=next_order(db, SteckbriefField),
        active=True,
    )
    db.add(field)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.CREATE,
        entity="SteckbriefField",
        entity_id=field.id,
        entity_name=field.label,
        new_values=snapshot(field, AUDIT_FIELDS),
    )
    return {"message": "Feld erfolgreich erstellt.", "field": serialize_field(field)}


def update_field(db: Session, field_id: int, data: dict, alias: str | None) -> dict:
    """Apply a partial update; `data` holds only the keys the client sent."""
    field = db.get(SteckbriefField, field_id)
    if not field:
        return {"error": MSG_NOT_FOUND, "status": 404}
    if "key" in data or "type" in data:
        return {"error": "Key und Typ eines Feldes können nicht geändert werden.", "status": 400}

    before = snapshot(field, AUDIT_FIELDS)
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "label":
            value = value.strip()
        elif key == "placeholder":
            value = (value or "").strip() or None
        setattr(field, key, value)
    db.commit()
    old, new = changed_values(before, snapshot(field, AUDIT_FIELDS))
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="SteckbriefField",
        entity_id=field.id,
        entity_name=field.label,
        old_values=old,
        new_values=new,
    )
    return {"message": "Feld erfolgreich aktualisiert.", "field": serialize_field(field)}


def reorder_fields(db: Session, orders: list[dict], alias: str | None) -> dict:
    updated = apply_reorder(db, SteckbriefField, orders)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.REORDER,
        entity="SteckbriefField",
        new_values={"count": updated},
    )
    return {"message": "Reihenfolge erfolgreich aktualisiert.", "updated": updated}
