"""
routers/comments.py — Comments about students and teachers

Business Rules:
- One comment per author and person; never about yourself
- Authors edit and delete only their own comments, until the deadline
- Admins edit and delete any comment (audited)

Called by: main.py (router mount)
Depends on: services/social_service
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, require_open_deadline, require_student, unwrap
from ..models import User
from ..schemas.admin import TextUpdate
from ..schemas.student import CommentCreate, CommentUpdate
from ..services import social_service

log = logging.getLogger(__name__)

router = APIRouter(tags=["comments"])


@router.get("/api/comments")
async def own_comments(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return {
        "comments": social_service.list_own_comments(db, user),
        **social_service.comment_targets(db, user),
    }


@router.post("/api/comments", status_code=201, dependencies=[Depends(require_open_deadline)])
async def create_comment(payload: CommentCreate, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(
        social_service.create_comment(db, user, payload.target_type.value, payload.target_id, payload.text)
    )


@router.patch("/api/comments/{comment_id}", dependencies=[Depends(require_open_deadline)])
async def update_comment(
    comment_id: int,
    payload: CommentUpdate,
    user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.update_own_comment(db, user, comment_id, payload.text))


@router.delete("/api/comments/{comment_id}", dependencies=[Depends(require_open_deadline)])
async def delete_comment(comment_id: int, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(social_service.delete_own_comment(db, user, comment_id))


# ── Admin ────────────────────────────────────────────────────────────


@router.get("/api/admin/comments")
async def admin_comments(
    target_type: str | None = Query(None),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"comments": social_service.admin_list_comments(db, target_type or None)}


@router.patch("/api/admin/comments/{comment_id}")
async def admin_update_comment(
    comment_id: int,
    payload: TextUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.admin_update_comment(db, comment_id, payload.text, alias))


@router.delete("/api/admin/comments/{comment_id}")
async def admin_delete_comment(
    comment_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.admin_delete_comment(db, comment_id, alias))
