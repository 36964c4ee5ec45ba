"""
routers/admin_people.py — Student whitelist, teachers and CSV imports

Business Rules:
- DELETE on students and teachers deactivates; votes and quotes stay
- CSV imports exist for students, teachers and ranking questions
- Preview returns mapped rows for editing; /import/rows imports the
  edited rows, /import imports the file directly
- Each import is one IMPORT audit entry with the counts

Called by: main.py (router mount)
Depends on: services/people_service, services/csv_import_service,
            utils/file_validation, schemas/admin
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..constants import AuditAction
from ..database import get_db
from ..dependencies import get_admin_alias, require_admin, unwrap
from ..models import Student, Teacher, User
from ..schemas.admin import ImportRows, StudentCreate, StudentUpdate, TeacherCreate, TeacherUpdate
from ..services import csv_import_service, people_service
from ..services.audit_service import log_admin_action
from ..utils.file_validation import decode_text, validate_csv_upload

log = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])

IMPORT_ENTITIES = {
    "students": "Student",
    "teachers": "Teacher",
    "ranking-questions": "RankingQuestion",
}


# ── Students ─────────────────────────────────────────────────────────


@router.get("/api/admin/students")
async def list_students(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"students": people_service.list_students(db)}


@router.post("/api/admin/students", status_code=201)
async def create_student(
    payload: StudentCreate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.create_student(db, payload.model_dump(mode="json"), alias))


@router.get("/api/admin/students/{student_id}")
async def get_student(student_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    student = db.get(Student, student_id)
    if not student:
        raise HTTPException(404, people_service.MSG_STUDENT_NOT_FOUND)
    return {"student": people_service.serialize_student_admin(student)}


@router.patch("/api/admin/students/{student_id}")
async def update_student(
    student_id: int,
    payload: StudentUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.update_student(db, student_id, payload.sent(), alias))


@router.delete("/api/admin/students/{student_id}")
async def delete_student(
    student_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.deactivate_student(db, student_id, alias))


# ── Teachers ─────────────────────────────────────────────────────────


@router.get("/api/admin/teachers")
async def list_teachers(user: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"teachers": people_service.list_teachers(db)}


@router.post("/api/admin/teachers", status_code=201)
async def create_teacher(
    payload: TeacherCreate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.create_teacher(db, payload.model_dump(mode="json"), alias))


@router.get("/api/admin/teachers/{teacher_id}")
async def get_teacher(teacher_id: int, user: User = Depends(require_admin), db: Session = Depends(get_db)):
    teacher = db.get(Teacher, teacher_id)
    if not teacher:
        raise HTTPException(404, people_service.MSG_TEACHER_NOT_FOUND)
    return {"teacher": people_service.serialize_teacher_admin(teacher)}


@router.patch("/api/admin/teachers/{teacher_id}")
async def update_teacher(
    teacher_id: int,
    payload: TeacherUpdate,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.update_teacher(db, teacher_id, payload.sent(), alias))


@router.delete("/api/admin/teachers/{teacher_id}")
async def delete_teacher(
    teacher_id: int,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    return unwrap(people_service.deactivate_teacher(db, teacher_id, alias))


# ── CSV imports ──────────────────────────────────────────────────────


def _columns(kind: str):
    columns = csv_import_service.COLUMN_SETS.get(kind)
    if columns is None:
        raise HTTPException(404, "Unbekannter Import-Typ.")
    return columns


async def _read_csv(file: UploadFile) -> str:
    content = await file.read()
    ok, msg = validate_csv_upload(content, file.filename or "")
    if not ok:
        raise HTTPException(400, msg)
    return decode_text(content)


def _preview(kind: str, text: str) -> dict:
    try:
        return csv_import_service.build_preview(text, _columns(kind))
    except csv_import_service.CsvImportError as e:
        raise HTTPException(400, str(e))


def _run_import(db: Session, kind: str, rows: list[dict], alias: str | None) -> dict:
    result = csv_import_service.IMPORTERS[kind](db, rows)
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.IMPORT,
        entity=IMPORT_ENTITIES[kind],
        new_values={"success": result.success, "skipped": result.skipped, "errors": len(result.errors)},
    )
    return {"message": csv_import_service.import_message(kind, result), "result": result.as_dict()}


@router.post("/api/admin/{kind}/import/preview")
async def import_preview(
    kind: str,
    file: UploadFile = File(...),
    user: User = Depends(require_admin),
):
    _columns(kind)
    return _preview(kind, await _read_csv(file))


@router.post("/api/admin/{kind}/import")
async def import_file(
    kind: str,
    file: UploadFile = File(...),
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    _columns(kind)
    preview = _preview(kind, await _read_csv(file))
    return _run_import(db, kind, preview["rows"], alias)


@router.post("/api/admin/{kind}/import/rows")
async def import_rows(
    kind: str,
    payload: ImportRows,
    user: User = Depends(require_admin),
    alias: str | None = Depends(get_admin_alias),
    db: Session = Depends(get_db),
):
    _columns(kind)
    return _run_import(db, kind, payload.rows, alias)
