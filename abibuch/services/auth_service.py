"""
auth_service.py — Password hashing, login, whitelist registration

Business Rules:
- Passwords are bcrypt hashes; minimum length 8 (enforced in schemas)
- Login fails identically for unknown email, wrong password, inactive user
- Registration only for whitelisted, active students that are not yet linked
- A registered student gets a STUDENT user, a DRAFT profile, and the
  whitelist entry is linked to the new user

Called by: routers/auth.py, routers/admin_users.py, scripts/create_admin.py
Depends on: models (User, Student, Profile), bcrypt
"""

import logging

import bcrypt
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import Role, Status
from ..models import Profile, Student, User

log = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        log.warning("Stored password hash is malformed")
        return False


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def authenticate(db: Session, email: str, password: str) -> User | None:
    """Return the user for valid credentials, else None."""
    user = find_user_by_email(db, email)
    if not user or not user.active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def register_student(db: Session, email: str, password: str) -> dict:
    """Create a student account from the whitelist.

    Returns {"user": User} or {"error": str, "status": int}.
    """
    email = email.strip().lower()
    student = db.query(Student).filter(func.lower(Student.email) == email).first()
    if not student or not student.active:
        return {
            "error": "Diese E-Mail-Adresse ist nicht für die Registrierung freigeschaltet.",
            "status": 403,
        }
    if student.user_id is not None or find_user_by_email(db, email):
        return {"error": "Für diese E-Mail-Adresse existiert bereits ein Konto.", "status": 400}

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=student.first_name,
        last_name=student.last_name,
        role=Role.STUDENT.value,
        active=True,
    )
    db.add(user)
    db.flush()
    db.add(Profile(user_id=user.id, status=Status.DRAFT.value))
    student.user_id = user.id
    db.commit()
    log.info(f"Student registered: {email} (student_id={student.id})")
    return {"user": user}


def ensure_profile(db: Session, user: User) -> Profile:
    """Return the user's profile, creating a DRAFT one if missing."""
    profile = db.query(Profile).filter(Profile.user_id == user.id).first()
    if not profile:
        profile = Profile(user_id=user.id, status=Status.DRAFT.value)
        db.add(profile)
        db.flush()
    return profile


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "active": user.active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ── Account settings ─────────────────────────────────────────────────


def update_own_profile(db: Session, user: User, data: dict) -> dict:
    """Change the caller's name or login email. `data` holds only sent keys."""
    email = data.get("email")
    if email and email != user.email:
        other = find_user_by_email(db, email)
        if other and other.id != user.id:
            return {"error": "Diese E-Mail-Adresse wird bereits verwendet.", "status": 400}
        user.email = email
    for key in ("first_name", "last_name"):
        if data.get(key):
            setattr(user, key, data[key])
    db.commit()
    return {"message": "Profil aktualisiert.", "user": serialize_user(user)}


def change_password(db: Session, user: User, current: str, new: str) -> dict:
    if not verify_password(current, user.password_hash):
        return {"error": "Das aktuelle Passwort ist falsch.", "status": 401}
    user.password_hash = hash_password(new)
    db.commit()
    log.info(f"Password changed for user {user.id}")
    return {"message": "Passwort erfolgreich geändert."}


# ── Bootstrap ────────────────────────────────────────────────────────


def ensure_admin(
    db: Session, email: str, password: str | None, first_name: str, last_name: str
) -> tuple[User, bool]:
    """Create an admin account, or promote and reactivate an existing one.

    The password is only set for new accounts. Returns (user, created).
    """
    user = find_user_by_email(db, email)
    if user:
        user.role = Role.ADMIN.value
        user.active = True
        db.commit()
        log.info(f"Promoted {user.email} to admin")
        return user, False
    user = User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role=Role.ADMIN.value,
        active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info(f"Created admin {user.email}")
    return user, True
