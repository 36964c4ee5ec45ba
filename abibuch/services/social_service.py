"""
social_service.py — Teacher quotes, student quotes and comments

Business Rules:
- Quotes are collected by students; only active teachers and registered,
  active students can be quoted, and nobody can view or quote themselves
- Several quotes can be added at once; blank lines are dropped
- Students delete only their own quotes; admins edit and delete any
- One comment per author and target; no comments about yourself
- Only the author may edit or delete a comment (admins aside)
- Quote creation is logged as a grouped CREATE activity

Called by: routers/quotes.py, routers/comments.py
Depends on: models, services/audit_service, services/student_activity_service
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import AuditAction, StudentAction, TargetType
from ..models import Comment, Student, StudentQuote, Teacher, TeacherQuote, User
from .audit_service import log_admin_action
from .student_activity_service import log_student_activity

log = logging.getLogger(__name__)

MSG_QUOTE_NOT_FOUND = "Zitat nicht gefunden."
MSG_COMMENT_NOT_FOUND = "Kommentar nicht gefunden."
MSG_TEACHER_NOT_FOUND = "Lehrer nicht gefunden."
MSG_STUDENT_NOT_FOUND = "Schüler nicht gefunden."


def _err(msg: str, status: int = 400) -> dict:
    return {"error": msg, "status": status}


def quotes_added_message(n: int) -> str:
    return f"{n} Zitat{'e' if n != 1 else ''} hinzugefügt."


def clean_quotes(quotes: list[str]) -> list[str]:
    return [q.strip() for q in quotes if q and q.strip()]


def serialize_quote(q, viewer: User | None = None) -> dict:
    out = {
        "id": q.id,
        "text": q.text,
        "created_at": q.created_at.isoformat() if q.created_at else None,
    }
    if viewer is not None:
        out["is_own"] = q.user_id == viewer.id
    return out


def own_student_id(db: Session, user: User) -> int | None:
    row = db.query(Student.id).filter(Student.user_id == user.id).first()
    return row[0] if row else None


# ── Teacher quotes ───────────────────────────────────────────────────


def list_teachers_with_counts(db: Session) -> list[dict]:
    counts = dict(
        db.query(TeacherQuote.teacher_id, func.count(TeacherQuote.id)).group_by(TeacherQuote.teacher_id).all()
    )
    teachers = (
        db.query(Teacher)
        .filter(Teacher.active.is_(True))
        .order_by(Teacher.last_name, Teacher.first_name)
        .all()
    )
    return [
        {
            "id": t.id,
            "salutation": t.salutation,
            "first_name": t.first_name,
            "last_name": t.last_name,
            "subject": t.subject,
            "display_name": t.display_name(),
            "quote_count": counts.get(t.id, 0),
        }
        for t in teachers
    ]


def _active_teacher(db: Session, teacher_id: int) -> Teacher | None:
    return db.query(Teacher).filter(Teacher.id == teacher_id, Teacher.active.is_(True)).first()


def get_teacher_quotes(db: Session, teacher_id: int, viewer: User) -> dict:
    teacher = _active_teacher(db, teacher_id)
    if not teacher:
        return _err(MSG_TEACHER_NOT_FOUND, 404)
    quotes = (
        db.query(TeacherQuote)
        .filter(TeacherQuote.teacher_id == teacher.id)
        .order_by(TeacherQuote.created_at.desc())
        .all()
    )
    return {
        "teacher": {"id": teacher.id, "display_name": teacher.display_name()},
        "quotes": [serialize_quote(q, viewer) for q in quotes],
    }


def add_teacher_quotes(db: Session, teacher_id: int, user: User, quotes: list[str]) -> dict:
    teacher = _active_teacher(db, teacher_id)
    if not teacher:
        return _err(MSG_TEACHER_NOT_FOUND, 404)
    texts = clean_quotes(quotes)
    if not texts:
        return _err("Bitte gib mindestens ein Zitat ein.")
    for text in texts:
        db.add(TeacherQuote(teacher_id=teacher.id, user_id=user.id, text=text))
    db.commit()
    log_student_activity(
        db, user.id, StudentAction.CREATE, "TeacherQuote", teacher.display_name(include_subject=False), len(texts)
    )
    return {"message": quotes_added_message(len(texts)), "count": len(texts)}


def delete_own_teacher_quote(db: Session, quote_id: int, user: User) -> dict:
    quote = db.get(TeacherQuote, quote_id)
    if not quote:
        return _err(MSG_QUOTE_NOT_FOUND, 404)
    if quote.user_id != user.id:
        return _err("Du kannst nur deine eigenen Zitate löschen.", 403)
    db.delete(quote)
    db.commit()
    return {"message": "Zitat gelöscht."}


# ── Student quotes ───────────────────────────────────────────────────


def list_students_with_counts(db: Session, viewer: User) -> list[dict]:
    counts = dict(
        db.query(StudentQuote.student_id, func.count(StudentQuote.id)).group_by(StudentQuote.student_id).all()
    )
    q = db.query(Student).filter(Student.active.is_(True), Student.user_id.isnot(None))
    own_id = own_student_id(db, viewer)
    if own_id is not None:
        q = q.filter(Student.id != own_id)
    students = q.order_by(Student.last_name, Student.first_name).all()
    return [
        {
            "id": s.id,
            "first_name": s.first_name,
            "last_name": s.last_name,
            "quote_count": counts.get(s.id, 0),
        }
        for s in students
    ]


def _quotable_student(db: Session, student_id: int, viewer: User, verb: str) -> Student | dict:
    student = (
        db.query(Student)
        .filter(Student.id == student_id, Student.active.is_(True), Student.user_id.isnot(None))
        .first()
    )
    if not student:
        return _err(MSG_STUDENT_NOT_FOUND, 404)
    if student.user_id == viewer.id:
        return _err(f"Du kannst keine Zitate über dich selbst {verb}.", 403)
    return student


def get_student_quotes(db: Session, student_id: int, viewer: User) -> dict:
    student = _quotable_student(db, student_id, viewer, "ansehen")
    if isinstance(student, dict):
        return student
    quotes = (
        db.query(StudentQuote)
        .filter(StudentQuote.student_id == student.id)
        .order_by(StudentQuote.created_at.desc())
        .all()
    )
    return {
        "student": {"id": student.id, "first_name": student.first_name, "last_name": student.last_name},
        "quotes": [serialize_quote(q, viewer) for q in quotes],
    }


def add_student_quotes(db: Session, student_id: int, user: User, quotes: list[str]) -> dict:
    student = _quotable_student(db, student_id, user, "hinzufügen")
    if isinstance(student, dict):
        return student
    texts = clean_quotes(quotes)
    if not texts:
        return _err("Bitte gib mindestens ein Zitat ein.")
    for text in texts:
        db.add(StudentQuote(student_id=student.id, user_id=user.id, text=text))
    db.commit()
    log_student_activity(db, user.id, StudentAction.CREATE, "StudentQuote", student.full_name, len(texts))
    return {"message": quotes_added_message(len(texts)), "count": len(texts)}


def delete_own_student_quote(db: Session, quote_id: int, user: User) -> dict:
    quote = db.get(StudentQuote, quote_id)
    if not quote:
        return _err(MSG_QUOTE_NOT_FOUND, 404)
    if quote.user_id != user.id:
        return _err("Du kannst nur deine eigenen Zitate löschen.", 403)
    db.delete(quote)
    db.commit()
    return {"message": "Zitat gelöscht."}


# ── Admin quote moderation ───────────────────────────────────────────

QUOTE_MODELS = {"TeacherQuote": TeacherQuote, "StudentQuote": StudentQuote}


def _quote_subject(quote) -> str:
    if isinstance(quote, TeacherQuote):
        return quote.teacher.display_name(include_subject=False)
    return quote.student.full_name


def admin_quotes_for(db: Session, entity: str, owner_id: int) -> dict:
    """All quotes about one teacher or student, with authors."""
    model = QUOTE_MODELS[entity]
    owner_col = model.teacher_id if model is TeacherQuote else model.student_id
    owner = db.get(Teacher if model is TeacherQuote else Student, owner_id)
    if not owner:
        return _err(MSG_TEACHER_NOT_FOUND if model is TeacherQuote else MSG_STUDENT_NOT_FOUND, 404)
    quotes = db.query(model).filter(owner_col == owner_id).order_by(model.created_at.desc()).all()
    return {
        "owner": {
            "id": owner.id,
            "name": owner.display_name() if model is TeacherQuote else owner.full_name,
        },
        "quotes": [
            {**serialize_quote(q), "author": q.user.full_name if q.user else None, "user_id": q.user_id}
            for q in quotes
        ],
    }


def admin_update_quote(db: Session, entity: str, quote_id: int, text: str, alias: str | None) -> dict:
    quote = db.get(QUOTE_MODELS[entity], quote_id)
    if not quote:
        return _err(MSG_QUOTE_NOT_FOUND, 404)
    old_text = quote.text
    quote.text = text.strip()
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity=entity,
        entity_id=quote.id,
        entity_name=_quote_subject(quote),
        old_values={"text": old_text},
        new_values={"text": quote.text},
    )
    return {"message": "Zitat aktualisiert.", "quote": serialize_quote(quote)}


def admin_delete_quote(db: Session, entity: str, quote_id: int, alias: str | None) -> dict:
    quote = db.get(QUOTE_MODELS[entity], quote_id)
    if not quote:
        return _err(MSG_QUOTE_NOT_FOUND, 404)
    subject = _quote_subject(quote)
    old_text = quote.text
    db.delete(quote)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.DELETE,
        entity=entity,
        entity_id=quote_id,
        entity_name=subject,
        old_values={"text": old_text},
    )
    return {"message": "Zitat gelöscht."}


# ── Comments ─────────────────────────────────────────────────────────


def comment_target_name(c: Comment) -> str | None:
    if c.student is not None:
        return c.student.full_name
    if c.teacher is not None:
        return c.teacher.display_name(include_subject=False)
    return None


def serialize_comment(c: Comment) -> dict:
    return {
        "id": c.id,
        "text": c.text,
        "target_type": c.target_type,
        "target_id": c.student_id or c.teacher_id,
        "target": {"id": c.student_id or c.teacher_id, "name": comment_target_name(c)},
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "updated_at": c.updated_at.isoformat() if c.updated_at else None,
    }


def list_own_comments(db: Session, user: User) -> list[dict]:
    rows = db.query(Comment).filter(Comment.author_id == user.id).order_by(Comment.created_at.desc()).all()
    return [serialize_comment(c) for c in rows]


def comment_targets(db: Session, user: User) -> dict:
    """Active students (except yourself) and teachers that can be commented on."""
    own_id = own_student_id(db, user)
    students = db.query(Student).filter(Student.active.is_(True))
    if own_id is not None:
        students = students.filter(Student.id != own_id)
    teachers = db.query(Teacher).filter(Teacher.active.is_(True)).order_by(Teacher.last_name)
    return {
        "students": [
            {"id": s.id, "name": s.full_name}
            for s in students.order_by(Student.last_name, Student.first_name).all()
        ],
        "teachers": [{"id": t.id, "name": t.display_name(include_subject=False)} for t in teachers.all()],
    }


def create_comment(db: Session, user: User, target_type: str, target_id: int, text: str) -> dict:
    if target_type == TargetType.STUDENT:
        target = db.query(Student).filter(Student.id == target_id, Student.active.is_(True)).first()
        if not target:
            return _err(MSG_STUDENT_NOT_FOUND, 404)
        if target.user_id == user.id:
            return _err("Du kannst keinen Kommentar über dich selbst schreiben.")
        existing = db.query(Comment).filter(Comment.author_id == user.id, Comment.student_id == target.id)
        name = target.full_name
    else:
        target = _active_teacher(db, target_id)
        if not target:
            return _err(MSG_TEACHER_NOT_FOUND, 404)
        existing = db.query(Comment).filter(Comment.author_id == user.id, Comment.teacher_id == target.id)
        name = target.display_name(include_subject=False)

    if existing.first():
        return _err("Du hast bereits einen Kommentar über diese Person geschrieben.")

    comment = Comment(
        author_id=user.id,
        target_type=TargetType(target_type).value,
        student_id=target.id if target_type == TargetType.STUDENT else None,
        teacher_id=target.id if target_type == TargetType.TEACHER else None,
        text=text.strip(),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    log_student_activity(db, user.id, StudentAction.CREATE, "Comment", name)
    return {"message": "Kommentar gespeichert.", "comment": serialize_comment(comment)}


def update_own_comment(db: Session, user: User, comment_id: int, text: str) -> dict:
    comment = db.get(Comment, comment_id)
    if not comment:
        return _err(MSG_COMMENT_NOT_FOUND, 404)
    if comment.author_id != user.id:
        return _err("Du kannst nur deine eigenen Kommentare bearbeiten.", 403)
    comment.text = text.strip()
    db.commit()
    return {"message": "Kommentar aktualisiert.", "comment": serialize_comment(comment)}


def delete_own_comment(db: Session, user: User, comment_id: int) -> dict:
    comment = db.get(Comment, comment_id)
    if not comment:
        return _err(MSG_COMMENT_NOT_FOUND, 404)
    if comment.author_id != user.id:
        return _err("Du kannst nur deine eigenen Kommentare löschen.", 403)
    db.delete(comment)
    db.commit()
    return {"message": "Kommentar gelöscht."}


def admin_list_comments(db: Session, target_type: str | None = None) -> list[dict]:
    q = db.query(Comment)
    if target_type:
        q = q.filter(Comment.target_type == target_type)
    rows = q.order_by(Comment.created_at.desc()).all()
    return [
        {**serialize_comment(c), "author": c.author.full_name if c.author else None, "author_id": c.author_id}
        for c in rows
    ]


def admin_update_comment(db: Session, comment_id: int, text: str, alias: str | None) -> dict:
    comment = db.get(Comment, comment_id)
    if not comment:
        return _err(MSG_COMMENT_NOT_FOUND, 404)
    old_text = comment.text
    comment.text = text.strip()
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="Comment",
        entity_id=comment.id,
        entity_name=comment_target_name(comment),
        old_values={"text": old_text},
        new_values={"text": comment.text},
    )
    return {"message": "Kommentar aktualisiert.", "comment": serialize_comment(comment)}


def admin_delete_comment(db: Session, comment_id: int, alias: str | None) -> dict:
    comment = db.get(Comment, comment_id)
    if not comment:
        return _err(MSG_COMMENT_NOT_FOUND, 404)
    name = comment_target_name(comment)
    old_text = comment.text
    db.delete(comment)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.DELETE,
        entity="Comment",
        entity_id=comment_id,
        entity_name=name,
        old_values={"text": old_text},
    )
    return {"message": "Kommentar gelöscht."}
