"""
photo_service.py — Photo categories (admin) and student uploads

Business Rules:
- Students upload into active categories, at most max_per_user each
- The first upload into a category without cover becomes its cover
- Deleting the cover photo promotes the oldest remaining photo (or clears it)
- Other students' photos are shown without uploader details
- A category's cover must be one of its own photos
- Categories are deactivated, never deleted, so no upload is orphaned

Called by: routers/photos.py
Depends on: models, services/storage_service, services/audit_service,
            services/student_activity_service, utils/file_validation
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import AuditAction, StudentAction
from ..models import Photo, PhotoCategory, User
from ..utils.file_validation import validate_image
from .audit_service import changed_values, log_admin_action, snapshot
from .ordering import apply_reorder, next_order
from .storage_service import delete_upload, save_upload
from .student_activity_service import log_student_activity

log = logging.getLogger(__name__)

CATEGORY_FIELDS = ("name", "description", "max_per_user", "order", "active")
MSG_CATEGORY_NOT_FOUND = "Rubrik nicht gefunden."
MSG_PHOTO_NOT_FOUND = "Foto nicht gefunden."


def _err(msg: str, status: int = 400) -> dict:
    return {"error": msg, "status": status}


def serialize_category(c: PhotoCategory) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "cover_image_url": c.cover_image_url,
        "max_per_user": c.max_per_user,
        "order": c.order,
        "active": c.active,
    }


def serialize_photo(p: Photo, viewer: User | None = None, with_user: bool = True) -> dict:
    out = {
        "id": p.id,
        "category_id": p.category_id,
        "image_url": p.image_url,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }
    if viewer is not None:
        out["is_own"] = p.user_id == viewer.id
    if with_user:
        out["user"] = {"id": p.user.id, "first_name": p.user.first_name, "last_name": p.user.last_name}
    return out


def _promote_cover(db: Session, category: PhotoCategory, removed_url: str) -> None:
    """Replace a removed cover with the oldest remaining photo."""
    if category.cover_image_url != removed_url:
        return
    oldest = (
        db.query(Photo)
        .filter(Photo.category_id == category.id, Photo.image_url != removed_url)
        .order_by(Photo.created_at, Photo.id)
        .first()
    )
    category.cover_image_url = oldest.image_url if oldest else None


# ── Student side ─────────────────────────────────────────────────────


def student_overview(db: Session, user: User) -> list[dict]:
    categories = (
        db.query(PhotoCategory)
        .filter(PhotoCategory.active.is_(True))
        .order_by(PhotoCategory.order, PhotoCategory.id)
        .all()
    )
    totals = dict(db.query(Photo.category_id, func.count(Photo.id)).group_by(Photo.category_id).all())
    own = dict(
        db.query(Photo.category_id, func.count(Photo.id))
        .filter(Photo.user_id == user.id)
        .group_by(Photo.category_id)
        .all()
    )
    out = []
    for c in categories:
        first = c.photos[0].image_url if c.photos else None
        out.append({
            **serialize_category(c),
            "photo_count": totals.get(c.id, 0),
            "user_photo_count": own.get(c.id, 0),
            "first_photo_url": first,
        })
    return out


def category_detail(db: Session, category_id: int, user: User) -> dict:
    category = (
        db.query(PhotoCategory)
        .filter(PhotoCategory.id == category_id, PhotoCategory.active.is_(True))
        .first()
    )
    if not category:
        return _err(MSG_CATEGORY_NOT_FOUND, 404)
    photos = sorted(category.photos, key=lambda p: p.created_at, reverse=True)
    return {
        "category": serialize_category(category),
        "photos": [serialize_photo(p, user, with_user=p.user_id == user.id) for p in photos],
        "user_photo_count": sum(1 for p in photos if p.user_id == user.id),
    }


def upload_photo(db: Session, user: User, category_id: int, content: bytes) -> dict:
    ok, result = validate_image(content)
    if not ok:
        return _err(result)
    category = db.get(PhotoCategory, category_id)
    if not category or not category.active:
        return _err("Rubrik nicht gefunden oder nicht aktiv.", 404)
    count = (
        db.query(func.count(Photo.id))
        .filter(Photo.category_id == category.id, Photo.user_id == user.id)
        .scalar()
    )
    if count >= category.max_per_user:
        return _err(
            f"Du hast bereits die maximale Anzahl von {category.max_per_user} Fotos in dieser Rubrik erreicht."
        )

    url = save_upload(content, f"photos/{category.id}", f"user{user.id}", result)
    photo = Photo(category_id=category.id, user_id=user.id, image_url=url)
    db.add(photo)
    if not category.cover_image_url:
        category.cover_image_url = url
    db.commit()
    db.refresh(photo)
    log_student_activity(db, user.id, StudentAction.CREATE, "Photo", category.name)
    return {"message": "Foto erfolgreich hochgeladen.", "photo": serialize_photo(photo, user)}


def delete_own_photo(db: Session, user: User, photo_id: int) -> dict:
    photo = db.get(Photo, photo_id)
    if not photo:
        return _err(MSG_PHOTO_NOT_FOUND, 404)
    if photo.user_id != user.id:
        return _err("Du kannst nur deine eigenen Fotos löschen.", 403)
    _remove_photo(db, photo)
    return {"message": "Foto erfolgreich gelöscht."}


def _remove_photo(db: Session, photo: Photo) -> None:
    category = photo.category
    url = photo.image_url
    _promote_cover(db, category, url)
    db.delete(photo)
    db.commit()
    delete_upload(url)


# ── Admin side ───────────────────────────────────────────────────────


def admin_list_categories(db: Session) -> list[dict]:
    categories = db.query(PhotoCategory).order_by(PhotoCategory.order, PhotoCategory.id).all()
    totals = dict(db.query(Photo.category_id, func.count(Photo.id)).group_by(Photo.category_id).all())
    return [{**serialize_category(c), "photo_count": totals.get(c.id, 0)} for c in categories]


def admin_category_detail(db: Session, category_id: int) -> dict:
    category = db.get(PhotoCategory, category_id)
    if not category:
        return _err(MSG_CATEGORY_NOT_FOUND, 404)
    return {
        "category": serialize_category(category),
        "photos": [serialize_photo(p) for p in category.photos],
    }


def create_category(db: Session, data: dict, alias: str | None) -> dict:
    category = PhotoCategory(
        name=data["name"].strip(),
        description=(data.get("description") or "").strip() or None,
        max_per_user=data.get("max_per_user") or 10,
        order=next_order(db, PhotoCategory),
        active=True,
    )
    db.add(category)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.CREATE,
        entity="PhotoCategory",
        entity_id=category.id,
        entity_name=category.name,
        new_values=snapshot(category, CATEGORY_FIELDS),
    )
    return {"message": "Rubrik erfolgreich erstellt.", "category": serialize_category(category)}


def update_category(db: Session, category_id: int, data: dict, alias: str | None) -> dict:
    category = db.get(PhotoCategory, category_id)
    if not category:
        return _err(MSG_CATEGORY_NOT_FOUND, 404)
    before = snapshot(category, CATEGORY_FIELDS)
    for key in CATEGORY_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "description":
            value = (value or "").strip() or None
        elif key == "name":
            value = value.strip()
        setattr(category, key, value)
    db.commit()
    old, new = changed_values(before, snapshot(category, CATEGORY_FIELDS))
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="PhotoCategory",
        entity_id=category.id,
        entity_name=category.name,
        old_values=old,
        new_values=new,
    )
    return {"message": "Rubrik erfolgreich aktualisiert.", "category": serialize_category(category)}


def deactivate_category(db: Session, category_id: int, alias: str | None) -> dict:
    category = db.get(PhotoCategory, category_id)
    if not category:
        return _err(MSG_CATEGORY_NOT_FOUND, 404)
    category.active = False
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="PhotoCategory",
        entity_id=category.id,
        entity_name=category.name,
        old_values={"active": True},
        new_values={"active": False},
    )
    return {"message": "Rubrik deaktiviert."}


def set_cover(db: Session, category_id: int, image_url: str, alias: str | None) -> dict:
    category = db.get(PhotoCategory, category_id)
    if not category:
        return _err(MSG_CATEGORY_NOT_FOUND, 404)
    if not image_url:
        return _err("Bild-URL ist erforderlich.")
    belongs = (
        db.query(Photo.id)
        .filter(Photo.category_id == category.id, Photo.image_url == image_url)
        .first()
    )
    if not belongs:
        return _err("Foto nicht in dieser Rubrik gefunden.")
    old_url = category.cover_image_url
    category.cover_image_url = image_url
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="PhotoCategory",
        entity_id=category.id,
        entity_name=category.name,
        old_values={"cover_image_url": old_url},
        new_values={"cover_image_url": image_url},
    )
    return {"message": "Cover-Bild erfolgreich gesetzt.", "category": serialize_category(category)}


def admin_delete_photo(db: Session, photo_id: int, alias: str | None) -> dict:
    photo = db.get(Photo, photo_id)
    if not photo:
        return _err(MSG_PHOTO_NOT_FOUND, 404)
    category_name = photo.category.name
    uploader = photo.user.full_name if photo.user else None
    _remove_photo(db, photo)
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.DELETE,
        entity="Photo",
        entity_id=photo_id,
        entity_name=category_name,
        old_values={"user": uploader},
    )
    return {"message": "Foto erfolgreich gelöscht."}


def reorder_categories(db: Session, orders: list[dict], alias: str | None) -> dict:
    updated = apply_reorder(db, PhotoCategory, orders)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.REORDER,
        entity="PhotoCategory",
        new_values={"count": updated},
    )
    return {"message": "Reihenfolge erfolgreich aktualisiert.", "updated": updated}
