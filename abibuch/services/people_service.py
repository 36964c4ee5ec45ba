"""
people_service.py — Admin management of users, students and teachers

Business Rules:
- Emails are stored lowercase and must be unique per table
- Student emails must use the school domain
- Admins cannot deactivate, demote or delete their own account
- A STUDENT user created by an admin gets a DRAFT profile
- Students and teachers are never hard-deleted (DELETE deactivates them)
- Every successful change writes an audit entry after its commit

Called by: routers/admin_users.py, routers/admin_people.py
Depends on: models, services/audit_service, services/auth_service
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import AuditAction, Role
from ..models import Student, Teacher, User
from .audit_service import changed_values, log_admin_action, snapshot
from .auth_service import ensure_profile, find_user_by_email, hash_password, serialize_user

log = logging.getLogger(__name__)

USER_FIELDS = ("email", "first_name", "last_name", "role", "active")
STUDENT_FIELDS = ("first_name", "last_name", "email", "gender", "active")
TEACHER_FIELDS = ("salutation", "first_name", "last_name", "subject", "active")

MSG_USER_NOT_FOUND = "Benutzer nicht gefunden."
MSG_STUDENT_NOT_FOUND = "Schüler nicht gefunden."
MSG_TEACHER_NOT_FOUND = "Lehrer nicht gefunden."
MSG_EMAIL_IN_USE = "Diese E-Mail-Adresse wird bereits verwendet."
MSG_STUDENT_EXISTS = "Ein Schüler mit dieser E-Mail-Adresse existiert bereits."


def _err(msg: str, status: int = 400) -> dict:
    return {"error": msg, "status": status}


def _clean(data: dict, nullable: tuple[str, ...] = ()) -> dict:
    """Strip strings; drop None unless the key may be cleared."""
    out = {}
    for k, v in data.items():
        if isinstance(v, str):
            v = v.strip()
            if not v and k in nullable:
                v = None
        if v is None and k not in nullable:
            continue
        out[k] = v
    return out


# ── Users ────────────────────────────────────────────────────────────


def list_users(db: Session) -> list[dict]:
    users = db.query(User).order_by(User.last_name, User.first_name).all()
    return [serialize_user(u) for u in users]


def create_user(db: Session, data: dict, alias: str | None) -> dict:
    data = _clean(data)
    email = data["email"].lower()
    if find_user_by_email(db, email):
        return _err(MSG_EMAIL_IN_USE)
    user = User(
        email=email,
        password_hash=hash_password(data["password"]),
        first_name=data["first_name"],
        last_name=data["last_name"],
        role=data.get("role", Role.STUDENT.value),
        active=True,
    )
    db.add(user)
    db.flush()
    if user.role == Role.STUDENT:
        ensure_profile(db, user)
    db.commit()
    log.info(f"User created: {email} ({user.role})")
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.CREATE,
        entity="User",
        entity_id=user.id,
        entity_name=user.full_name,
        new_values=snapshot(user, USER_FIELDS),
    )
    return {"message": "Benutzer erfolgreich erstellt.", "user": serialize_user(user)}


def update_user(db: Session, user_id: int, data: dict, actor: User, alias: str | None) -> dict:
    target = db.get(User, user_id)
    if not target:
        return _err(MSG_USER_NOT_FOUND, 404)
    data = _clean(data)
    if target.id == actor.id:
        if data.get("active") is False:
            return _err("Du kannst dein eigenes Konto nicht deaktivieren.")
        if "role" in data and data["role"] != Role.ADMIN:
            return _err("Du kannst dir nicht selbst die Admin-Rechte entziehen.")
    if "email" in data:
        data["email"] = data["email"].lower()
        other = find_user_by_email(db, data["email"])
        if other and other.id != target.id:
            return _err(MSG_EMAIL_IN_USE)

    before = snapshot(target, USER_FIELDS)
    for key in USER_FIELDS:
        if key in data:
            setattr(target, key, data[key])
    if target.role == Role.STUDENT:
        ensure_profile(db, target)
    db.commit()
    old, new = changed_values(before, snapshot(target, USER_FIELDS))
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="User",
        entity_id=target.id,
        entity_name=target.full_name,
        old_values=old,
        new_values=new,
    )
    return {"message": "Benutzer erfolgreich aktualisiert.", "user": serialize_user(target)}


def reset_password(db: Session, user_id: int, new_password: str, alias: str | None) -> dict:
    target = db.get(User, user_id)
    if not target:
        return _err(MSG_USER_NOT_FOUND, 404)
    target.password_hash = hash_password(new_password)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="User",
        entity_id=target.id,
        entity_name=target.full_name,
        new_values={"password": "(zurückgesetzt)"},
    )
    return {"message": "Passwort erfolgreich zurückgesetzt."}


def delete_user(db: Session, user_id: int, actor: User, alias: str | None) -> dict:
    target = db.get(User, user_id)
    if not target:
        return _err(MSG_USER_NOT_FOUND, 404)
    if target.id == actor.id:
        return _err("Du kannst dein eigenes Konto nicht löschen.")
    before = snapshot(target, USER_FIELDS)
    name = target.full_name
    db.delete(target)
    db.commit()
    log.info(f"User deleted: {before['email']}")
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.DELETE,
        entity="User",
        entity_id=user_id,
        entity_name=name,
        old_values=before,
    )
    return {"message": "Benutzer gelöscht."}


# ── Students ─────────────────────────────────────────────────────────


def serialize_student_admin(s: Student) -> dict:
    return {
        "id": s.id,
        "first_name": s.first_name,
        "last_name": s.last_name,
        "email": s.email,
        "gender": s.gender,
        "active": s.active,
        "registered": s.user_id is not None,
        "user_id": s.user_id,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


def list_students(db: Session) -> list[dict]:
    rows = db.query(Student).order_by(Student.last_name, Student.first_name).all()
    return [serialize_student_admin(s) for s in rows]


def _student_email_taken(db: Session, email: str, exclude_id: int | None = None) -> bool:
    q = db.query(Student).filter(func.lower(Student.email) == email)
    if exclude_id is not None:
        q = q.filter(Student.id != exclude_id)
    return db.query(q.exists()).scalar()


def _check_domain(email: str) -> dict | None:
    if not email.endswith(settings.school_email_domain):
        return _err(f"Die E-Mail-Adresse muss auf {settings.school_email_domain} enden.")
    return None


def create_student(db: Session, data: dict, alias: str | None) -> dict:
    data = _clean(data)
    email = data["email"].lower()
    err = _check_domain(email)
    if err:
        return err
    if _student_email_taken(db, email):
        return _err(MSG_STUDENT_EXISTS)
    student = Student(
        first_name=data["first_name"],
        last_name=data["last_name"],
        email=email,
        gender=data.get("gender"),
        active=True,
    )
    db.add(student)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.CREATE,
        entity="Student",
        entity_id=student.id,
        entity_name=student.full_name,
        new_values=snapshot(student, STUDENT_FIELDS),
    )
    return {"message": "Schüler erfolgreich hinzugefügt.", "student": serialize_student_admin(student)}


def update_student(db: Session, student_id: int, data: dict, alias: str | None) -> dict:
    student = db.get(Student, student_id)
    if not student:
        return _err(MSG_STUDENT_NOT_FOUND, 404)
    data = _clean(data, nullable=("gender",))
    if "email" in data:
        data["email"] = data["email"].lower()
        err = _check_domain(data["email"])
        if err:
            return err
        if _student_email_taken(db, data["email"], exclude_id=student.id):
            return _err(MSG_STUDENT_EXISTS)

    before = snapshot(student, STUDENT_FIELDS)
    for key in STUDENT_FIELDS:
        if key in data:
            setattr(student, key, data[key])
    db.commit()
    old, new = changed_values(before, snapshot(student, STUDENT_FIELDS))
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="Student",
        entity_id=student.id,
        entity_name=student.full_name,
        old_values=old,
        new_values=new,
    )
    return {"message": "Schüler erfolgreich aktualisiert.", "student": serialize_student_admin(student)}


def deactivate_student(db: Session, student_id: int, alias: str | None) -> dict:
    student = db.get(Student, student_id)
    if not student:
        return _err(MSG_STUDENT_NOT_FOUND, 404)
    student.active = False
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="Student",
        entity_id=student.id,
        entity_name=student.full_name,
        old_values={"active": True},
        new_values={"active": False},
    )
    return {"message": "Schüler erfolgreich deaktiviert."}


# ── Teachers ─────────────────────────────────────────────────────────


def serialize_teacher_admin(t: Teacher) -> dict:
    return {
        "id": t.id,
        "salutation": t.salutation,
        "first_name": t.first_name,
        "last_name": t.last_name,
        "subject": t.subject,
        "active": t.active,
        "display_name": t.display_name(),
    }


def list_teachers(db: Session) -> list[dict]:
    rows = db.query(Teacher).order_by(Teacher.last_name, Teacher.first_name).all()
    return [serialize_teacher_admin(t) for t in rows]


def create_teacher(db: Session, data: dict, alias: str | None) -> dict:
    data = _clean(data)
    teacher = Teacher(
        salutation=data["salutation"],
        last_name=data["last_name"],
        first_name=data.get("first_name") or None,
        subject=data.get("subject") or None,
        active=True,
    )
    db.add(teacher)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.CREATE,
        entity="Teacher",
        entity_id=teacher.id,
        entity_name=teacher.display_name(include_subject=False),
        new_values=snapshot(teacher, TEACHER_FIELDS),
    )
    return {"message": "Lehrer erfolgreich hinzugefügt.", "teacher": serialize_teacher_admin(teacher)}


def update_teacher(db: Session, teacher_id: int, data: dict, alias: str | None) -> dict:
    teacher = db.get(Teacher, teacher_id)
    if not teacher:
        return _err(MSG_TEACHER_NOT_FOUND, 404)
    data = _clean(data, nullable=("first_name", "subject"))
    before = snapshot(teacher, TEACHER_FIELDS)
    for key in TEACHER_FIELDS:
        if key in data:
            setattr(teacher, key, data[key])
    db.commit()
    old, new = changed_values(before, snapshot(teacher, TEACHER_FIELDS))
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="Teacher",
        entity_id=teacher.id,
        entity_name=teacher.display_name(include_subject=False),
        old_values=old,
        new_values=new,
    )
    return {"message": "Lehrer erfolgreich aktualisiert.", "teacher": serialize_teacher_admin(teacher)}


def deactivate_teacher(db: Session, teacher_id: int, alias: str | None) -> dict:
    teacher = db.get(Teacher, teacher_id)
    if not teacher:
        return _err(MSG_TEACHER_NOT_FOUND, 404)
    teacher.active = False
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="Teacher",
        entity_id=teacher.id,
        entity_name=teacher.display_name(include_subject=False),
        old_values={"active": True},
        new_values={"active": False},
    )
    return {"message": "Lehrer erfolgreich deaktiviert."}
