"""
routers/quotes.py — Teacher and student quotes

Business Rules:
- Students add quotes in batches and delete only their own
- Nobody views or adds quotes about themselves
- Writes are blocked after the deadline
- Admins edit and delete any quote (audited)

Called by: main.py (router mount)
Depends on: services/social_service
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, require_open_deadline, require_student, unwrap
from ..models import User
from ..schemas.admin import TextUpdate
from ..schemas.student import QuotesCreate
from ..services import social_service

log = logging.getLogger(__name__)

router = APIRouter(tags=["quotes"])


# ── Teacher quotes ───────────────────────────────────────────────────


@router.get("/api/teacher-quotes")
async def list_teachers(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return {"teachers": social_service.list_teachers_with_counts(db)}


@router.get("/api/teacher-quotes/{teacher_id}")
async def teacher_quotes(teacher_id: int, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(social_service.get_teacher_quotes(db, teacher_id, user))


@router.post("/api/teacher-quotes/{teacher_id}", status_code=201, dependencies=[Depends(require_open_deadline)])
async def add_teacher_quotes(
    teacher_id: int,
    payload: QuotesCreate,
    user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.add_teacher_quotes(db, teacher_id, user, payload.quotes))


@router.delete("/api/teacher-quotes/quote/{quote_id}", dependencies=[Depends(require_open_deadline)])
async def delete_teacher_quote(quote_id: int, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(social_service.delete_own_teacher_quote(db, quote_id, user))


# ── Student quotes ───────────────────────────────────────────────────


@router.get("/api/student-quotes")
async def list_students(user: User = Depends(require_student), db: Session = Depends(get_db)):
    return {"students": social_service.list_students_with_counts(db, user)}


@router.get("/api/student-quotes/{student_id}")
async def student_quotes(student_id: int, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(social_service.get_student_quotes(db, student_id, user))


@router.post("/api/student-quotes/{student_id}", status_code=201, dependencies=[Depends(require_open_deadline)])
async def add_student_quotes(
    student_id: int,
    payload: QuotesCreate,
    user: User = Depends(require_student),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.add_student_quotes(db, student_id, user, payload.quotes))


@router.delete("/api/student-quotes/quote/{quote_id}", dependencies=[Depends(require_open_deadline)])
async def delete_student_quote(quote_id: int, user: User = Depends(require_student), db: Session = Depends(get_db)):
    return unwrap(social_service.delete_own_student_quote(db, quote_id, user))


# ── Admin ────────────────────────────────────────────────────────────


@router.get("/api/admin/teacher-quotes")
async def admin_teachers(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"teachers": social_service.list_teachers_with_counts(db)}


@router.get("/api/admin/teacher-quotes/{teacher_id}")
async def admin_teacher_quotes(teacher_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(social_service.admin_quotes_for(db, "TeacherQuote", teacher_id))


@router.patch("/api/admin/teacher-quotes/quote/{quote_id}")
async def admin_update_teacher_quote(
    quote_id: int,
    payload: TextUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.admin_update_quote(db, "TeacherQuote", quote_id, payload.text, alias))


@router.delete("/api/admin/teacher-quotes/quote/{quote_id}")
async def admin_delete_teacher_quote(
    quote_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.admin_delete_quote(db, "TeacherQuote", quote_id, alias))


@router.get("/api/admin/student-quotes")
async def admin_students(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"students": social_service.list_students_with_counts(db, user)}


@router.get("/api/admin/student-quotes/{student_id}")
async def admin_student_quotes(student_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return unwrap(social_service.admin_quotes_for(db, "StudentQuote", student_id))


@router.patch("/api/admin/student-quotes/quote/{quote_id}")
async def admin_update_student_quote(
    quote_id: int,
    payload: TextUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.admin_update_quote(db, "StudentQuote", quote_id, payload.text, alias))


@router.delete("/api/admin/student-quotes/quote/{quote_id}")
async def admin_delete_student_quote(
    quote_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(social_service.admin_delete_quote(db, "StudentQuote", quote_id, alias))
