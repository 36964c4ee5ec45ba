"""
routers/photos.py — Photo categories and uploads

Business Rules:
- Students upload into active categories until max_per_user
- Uploads and deletions are blocked after the deadline
- Admins manage categories (deactivate instead of delete), choose the
  cover and may delete any photo

Called by: main.py (router mount)
Depends on: services/photo_service
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, require_open_deadline, require_student, unwrap
from ..models import User
from ..schemas.admin import CategoryReorder, CoverUpdate, PhotoCategoryCreate, PhotoCategoryUpdate
from ..services import photo_service

log = logging.getLogger(__name__)

router = APIRouter(tags=["photos"])


# ── Students ─────────────────────────────────────────────────────────


@router.get("/api/photos")
async def photo_overview(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return {"categories": photo_service.student_overview(db, user)}


@router.get("/api/photos/{category_id}")
async def photo_category(category_id: int, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(photo_service.category_detail(db, category_id, user))


@router.post("/api/photos/{category_id}", status_code=201, dependencies=[Depends(require_open_deadline)])
async def upload_photo(
    category_id: int,
    file: UploadFile = File(...),
    user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    content = await file.read()
    return unwrap(photo_service.upload_photo(db, user, category_id, content))


@router.delete("/api/photos/photo/{photo_id}", dependencies=[Depends(require_open_deadline)])
async def delete_photo(photo_id: int, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(photo_service.delete_own_photo(db, user, photo_id))


# ── Admin ────────────────────────────────────────────────────────────


@router.get("/api/admin/photo-categories")
async def list_categories(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"categories": photo_service.admin_list_categories(db)}


@router.post("/api/admin/photo-categories", status_code=201)
async def create_category(
    payload: PhotoCategoryCreate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return photo_service.create_category(db, payload.model_dump(mode="json"), alias)


@router.patch("/api/admin/photo-categories/reorder")
async def reorder_categories(
    payload: CategoryReorder,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    orders = [o.model_dump() for o in payload.category_orders]
    return photo_service.reorder_categories(db, orders, alias)


@router.get("/api/admin/photo-categories/{category_id}")
async def category_detail(category_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(photo_service.admin_category_detail(db, category_id))


@router.patch("/api/admin/photo-categories/{category_id}")
async def update_category(
    category_id: int,
    payload: PhotoCategoryUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(photo_service.update_category(db, category_id, payload.sent(), alias))


@router.delete("/api/admin/photo-categories/{category_id}")
async def delete_category(
    category_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(photo_service.deactivate_category(db, category_id, alias))


@router.patch("/api/admin/photo-categories/{category_id}/cover")
async def set_cover(
    category_id: int,
    payload: CoverUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(photo_service.set_cover(db, category_id, payload.image_url or "", alias))


@router.delete("/api/admin/photos/{photo_id}")
async def admin_delete_photo(
    photo_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(photo_service.admin_delete_photo(db, photo_id, alias))
