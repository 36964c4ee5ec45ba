"""
conftest.py — Shared Test Fixtures for Abibuch

Provides an in-memory SQLite database, FastAPI TestClients with auth
overrides, and factory fixtures for the core models (User, Student,
Teacher, RankingQuestion, SteckbriefField).

Business Rules:
- All tests run against an isolated in-memory DB
- Auth is overridden so most tests don't go through login
- Each test function gets a fresh schema
- Uploads are written below a per-test tmp_path

Called by: all test files via pytest autodiscovery
Depends on: abibuch.models (Base), abibuch.database (get_db), abibuch.dependencies
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing app modules

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from abibuch.config import settings
from abibuch.models import (
    Base,
    Profile,
    RankingQuestion,
    SteckbriefField,
    Student,
    Teacher,
    User,
)
from abibuch.services.auth_service import hash_password

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "geheim123"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Redirect uploads into the test's tmp directory."""
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", str(target))
    return target


@pytest.fixture()
def png_bytes() -> bytes:
    """Smallest payload filetype recognises as PNG."""
    return PNG_BYTES


@pytest.fixture()
def make_student(db_session: Session):
    """Factory: whitelist entry, optionally with a registered user."""

    def _make(first="Anna", last="Schmidt", gender="FEMALE", email=None, registered=False, active=True):
        email = email or f"{first.lower()}.{last.lower()}{settings.school_email_domain}"
        student = Student(first_name=first, last_name=last, email=email, gender=gender, active=active)
        db_session.add(student)
        db_session.flush()
        if registered:
            user = User(
                email=email,
                password_hash=hash_password(TEST_PASSWORD),
                first_name=first,
                last_name=last,
                role="STUDENT",
                active=True,
            )
            db_session.add(user)
            db_session.flush()
            db_session.add(Profile(user_id=user.id, status="DRAFT"))
            student.user_id = user.id
        db_session.commit()
        db_session.refresh(student)
        return student

    return _make


@pytest.fixture()
def student_user(make_student) -> User:
    """A registered student (Max Mustermann)."""
    return make_student("Max", "Mustermann", gender="MALE", registered=True).user


@pytest.fixture()
def other_student_user(make_student) -> User:
    return make_student("Lena", "Weber", gender="FEMALE", registered=True).user


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    user = User(
        email="admin@example.org",
        password_hash=hash_password(TEST_PASSWORD),
        first_name="Ada",
        last_name="Admin",
        role="ADMIN",
        active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def make_teacher(db_session: Session):
    def _make(last="Müller", salutation="HERR", first=None, subject=None, active=True):
        teacher = Teacher(
            salutation=salutation, last_name=last, first_name=first, subject=subject, active=active
        )
        db_session.add(teacher)
        db_session.commit()
        db_session.refresh(teacher)
        return teacher

    return _make


@pytest.fixture()
def make_question(db_session: Session):
    def _make(text="Wer wird Millionär?", type="STUDENT", answer_mode="SINGLE", order=0, active=True):
        q = RankingQuestion(text=text, type=type, answer_mode=answer_mode, order=order, active=active)
        db_session.add(q)
        db_session.commit()
        db_session.refresh(q)
        return q

    return _make


@pytest.fixture()
def make_field(db_session: Session):
    def _make(key="hobbies", type="TEXT", label="Hobbys", order=0, **kwargs):
        field = SteckbriefField(key=key, type=type, label=label, order=order, active=True, **kwargs)
        db_session.add(field)
        db_session.commit()
        db_session.refresh(field)
        return field

    return _make


# ── Clients ──────────────────────────────────────────────────────────


def _override_db_for(db_session):
    def _override_db():
        yield db_session

    return _override_db


@pytest.fixture()
def anon_client(db_session: Session) -> TestClient:
    """TestClient with only the DB overridden; auth goes through the session."""
    from abibuch.database import get_db
    from abibuch.main import app

    app.dependency_overrides[get_db] = _override_db_for(db_session)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session: Session, student_user: User) -> TestClient:
    """TestClient with auth overridden to return student_user."""
    from abibuch.database import get_db
    from abibuch.dependencies import require_student, require_user
    from abibuch.main import app

    app.dependency_overrides[get_db] = _override_db_for(db_session)
    app.dependency_overrides[require_user] = lambda: student_user
    app.dependency_overrides[require_student] = lambda: student_user
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_client(db_session: Session, admin_user: User) -> TestClient:
    """TestClient with admin auth overrides."""
    from abibuch.database import get_db
    from abibuch.dependencies import require_admin, require_user
    from abibuch.main import app

    app.dependency_overrides[get_db] = _override_db_for(db_session)
    app.dependency_overrides[require_admin] = lambda: admin_user
    app.dependency_overrides[require_user] = lambda: admin_user
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
