"""
ranking_service.py — Student side of the rankings

Business Rules:
- One vote per (voter, question, gender_target); re-voting overwrites
- GENDER_SPECIFIC questions take MALE/FEMALE targets, all others ALL only
- DUO needs two different active people of the question's type; the pair
  is stored lower id first so A+B and B+A count as the same answer
- SINGLE/GENDER_SPECIFIC need one active person; in gender mode a student's
  known gender and a teacher's salutation must match the target
- Changing a vote after submitting silently reverts the submission to DRAFT
- Votes cannot be deleted while submitted (retract first)

Called by: routers/rankings.py
Depends on: models, constants, services/student_activity_service
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..constants import AnswerMode, Gender, GenderTarget, QuestionType, Salutation, Status, StudentAction
from ..models import RankingQuestion, RankingSubmission, RankingVote, Student, Teacher, User
from .student_activity_service import log_student_activity

log = logging.getLogger(__name__)

SEARCH_LIMIT = 10


# ── Serialization ────────────────────────────────────────────────────


def serialize_student(s: Student | None) -> dict | None:
    if s is None:
        return None
    return {"id": s.id, "first_name": s.first_name, "last_name": s.last_name, "gender": s.gender}


def serialize_teacher(t: Teacher | None) -> dict | None:
    if t is None:
        return None
    return {
        "id": t.id,
        "salutation": t.salutation,
        "first_name": t.first_name,
        "last_name": t.last_name,
        "subject": t.subject,
        "display_name": t.display_name(),
    }


def serialize_question(q: RankingQuestion) -> dict:
    return {
        "id": q.id,
        "text": q.text,
        "type": q.type,
        "answer_mode": q.answer_mode,
        "order": q.order,
        "active": q.active,
    }


def serialize_vote(v: RankingVote) -> dict:
    return {
        "id": v.id,
        "question_id": v.question_id,
        "gender_target": v.gender_target,
        "student_id": v.student_id,
        "teacher_id": v.teacher_id,
        "student_id2": v.student_id2,
        "teacher_id2": v.teacher_id2,
        "student": serialize_student(v.student),
        "teacher": serialize_teacher(v.teacher),
        "student2": serialize_student(v.student2),
        "teacher2": serialize_teacher(v.teacher2),
    }


# ── Submission state ─────────────────────────────────────────────────


def get_submission(db: Session, user_id: int) -> RankingSubmission | None:
    return db.query(RankingSubmission).filter(RankingSubmission.user_id == user_id).first()


def submission_status(db: Session, user_id: int) -> str:
    sub = get_submission(db, user_id)
    return sub.status if sub else Status.DRAFT.value


def get_overview(db: Session, user: User) -> dict:
    questions = (
        db.query(RankingQuestion)
        .filter(RankingQuestion.active.is_(True))
        .order_by(RankingQuestion.order, RankingQuestion.id)
        .all()
    )
    votes = db.query(RankingVote).filter(RankingVote.voter_id == user.id).all()
    students = (
        db.query(Student)
        .filter(Student.active.is_(True))
        .order_by(Student.last_name, Student.first_name)
        .all()
    )
    teachers = (
        db.query(Teacher)
        .filter(Teacher.active.is_(True))
        .order_by(Teacher.last_name)
        .all()
    )
    sub = get_submission(db, user.id)
    return {
        "questions": [serialize_question(q) for q in questions],
        "votes": [serialize_vote(v) for v in votes],
        "status": sub.status if sub else Status.DRAFT.value,
        "submitted_at": sub.submitted_at.isoformat() if sub and sub.submitted_at else None,
        "students": [serialize_student(s) for s in students],
        "teachers": [serialize_teacher(t) for t in teachers],
    }


# ── Voting ───────────────────────────────────────────────────────────


def _error(msg: str, status: int = 400) -> dict:
    return {"error": msg, "status": status}


def _validate_duo(db: Session, qtype: str, first: int | None, second: int | None) -> dict | tuple[int, int]:
    is_student = qtype == QuestionType.STUDENT
    noun = "Schüler" if is_student else "Lehrer"
    if not first or not second:
        return _error(f"Bitte wähle zwei {noun} aus.")
    if first == second:
        return _error(f"Bitte wähle zwei verschiedene {noun} aus.")
    first, second = sorted((first, second))

    model = Student if is_student else Teacher
    found = db.query(func.count(model.id)).filter(model.id.in_([first, second]), model.active.is_(True)).scalar()
    if found != 2:
        return _error(f"Einer oder beide {noun} wurden nicht gefunden.", 404)
    return first, second


def _validate_single(
    db: Session, question: RankingQuestion, person_id: int | None, gender_target: str
) -> dict | None:
    gender_mode = question.answer_mode == AnswerMode.GENDER_SPECIFIC
    if question.type == QuestionType.STUDENT:
        if not person_id:
            return _error("Bitte wähle einen Schüler aus.")
        student = db.query(Student).filter(Student.id == person_id, Student.active.is_(True)).first()
        if not student:
            return _error("Schüler nicht gefunden.", 404)
        if gender_mode and student.gender:
            expected = Gender.MALE if gender_target == GenderTarget.MALE else Gender.FEMALE
            if student.gender != expected:
                return _error("Das Geschlecht des Schülers passt nicht zur Frage.")
        return None

    if not person_id:
        return _error("Bitte wähle einen Lehrer aus.")
    teacher = db.query(Teacher).filter(Teacher.id == person_id, Teacher.active.is_(True)).first()
    if not teacher:
        return _error("Lehrer nicht gefunden.", 404)
    if gender_mode:
        expected = Salutation.HERR if gender_target == GenderTarget.MALE else Salutation.FRAU
        if teacher.salutation != expected:
            return _error("Das Geschlecht des Lehrers passt nicht zur Frage.")
    return None


def cast_vote(
    db: Session,
    user: User,
    question_id: int,
    gender_target: str,
    student_id: int | None = None,
    teacher_id: int | None = None,
    student_id2: int | None = None,
    teacher_id2: int | None = None,
) -> dict:
    """Validate and upsert a vote. Returns {"vote", "status"} or an error dict."""
    question = (
        db.query(RankingQuestion)
        .filter(RankingQuestion.id == question_id, RankingQuestion.active.is_(True))
        .first()
    )
    if not question:
        return _error("Frage nicht gefunden.", 404)

    if question.answer_mode == AnswerMode.GENDER_SPECIFIC and gender_target == GenderTarget.ALL:
        return _error("Diese Frage erfordert eine geschlechtsspezifische Antwort.")
    if question.answer_mode != AnswerMode.GENDER_SPECIFIC and gender_target != GenderTarget.ALL:
        return _error("Diese Frage ist nicht geschlechtsspezifisch.")

    is_student = question.type == QuestionType.STUDENT
    first = student_id if is_student else teacher_id
    second = student_id2 if is_student else teacher_id2

    if question.answer_mode == AnswerMode.DUO:
        checked = _validate_duo(db, question.type, first, second)
        if isinstance(checked, dict):
            return checked
        first, second = checked
    else:
        err = _validate_single(db, question, first, gender_target)
        if err:
            return err
        second = None

    vote = (
        db.query(RankingVote)
        .filter(
            RankingVote.voter_id == user.id,
            RankingVote.question_id == question.id,
            RankingVote.gender_target == gender_target,
        )
        .first()
    )
    if not vote:
        vote = RankingVote(voter_id=user.id, question_id=question.id, gender_target=gender_target)
        db.add(vote)

    vote.student_id = first if is_student else None
    vote.student_id2 = second if is_student else None
    vote.teacher_id = None if is_student else first
    vote.teacher_id2 = None if is_student else second

    sub = get_submission(db, user.id)
    if not sub:
        sub = RankingSubmission(user_id=user.id, status=Status.DRAFT.value)
        db.add(sub)
    elif sub.status == Status.SUBMITTED:
        sub.status = Status.DRAFT.value
        sub.submitted_at = None
        log.info(f"Rankings auto-retracted for user {user.id} after vote change")

    db.commit()
    db.refresh(vote)
    return {"vote": serialize_vote(vote), "status": sub.status}


def delete_vote(db: Session, user: User, question_id: int, gender_target: str) -> dict:
    if submission_status(db, user.id) == Status.SUBMITTED:
        return _error("Rankings bereits abgeschickt. Bitte zuerst zurückziehen.")
    if gender_target not in {t.value for t in GenderTarget}:
        return _error("Ungültiger genderTarget-Parameter.")
    deleted = (
        db.query(RankingVote)
        .filter(
            RankingVote.voter_id == user.id,
            RankingVote.question_id == question_id,
            RankingVote.gender_target == gender_target,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    return {"message": "Stimme gelöscht.", "deleted": deleted}


def submit(db: Session, user: User) -> dict:
    """Upsert: submitting again refreshes submitted_at without a new feed entry."""
    sub = get_submission(db, user.id)
    if not sub:
        sub = RankingSubmission(user_id=user.id)
        db.add(sub)
    was_submitted = sub.status == Status.SUBMITTED
    sub.status = Status.SUBMITTED.value
    sub.submitted_at = datetime.now(timezone.utc)
    db.commit()
    if not was_submitted:
        log_student_activity(db, user.id, StudentAction.SUBMIT, "Rankings")
    return {"message": "Rankings abgeschickt.", "status": sub.status}


def retract(db: Session, user: User) -> dict:
    sub = get_submission(db, user.id)
    if not sub or sub.status != Status.SUBMITTED:
        return _error("Rankings sind nicht abgeschickt.")
    sub.status = Status.DRAFT.value
    sub.submitted_at = None
    db.commit()
    log_student_activity(db, user.id, StudentAction.RETRACT, "Rankings")
    return {"message": "Rankings zurückgezogen.", "status": sub.status}


# ── Search ───────────────────────────────────────────────────────────


def search_students(db: Session, query: str, gender: str | None = None) -> list[dict]:
    """Any query word may match first or last name (case-insensitive)."""
    words = [w for w in query.lower().split() if w]
    q = db.query(Student).filter(Student.active.is_(True))
    if words:
        clauses = []
        for w in words:
            clauses.append(func.lower(Student.first_name).contains(w))
            clauses.append(func.lower(Student.last_name).contains(w))
        q = q.filter(or_(*clauses))
    if gender in (Gender.MALE, Gender.FEMALE):
        q = q.filter(Student.gender == gender)
    rows = q.order_by(Student.first_name, Student.last_name).limit(SEARCH_LIMIT).all()
    return [serialize_student(s) for s in rows]


def search_teachers(db: Session, query: str, gender: str | None = None) -> list[dict]:
    """Every query word must match last name, first name or salutation."""
    q = db.query(Teacher).filter(Teacher.active.is_(True))
    for w in (w for w in query.lower().split() if w):
        clauses = [
            func.lower(Teacher.last_name).contains(w),
            func.lower(func.coalesce(Teacher.first_name, "")).contains(w),
        ]
        if "herr".startswith(w):
            clauses.append(Teacher.salutation == Salutation.HERR.value)
        if "frau".startswith(w):
            clauses.append(Teacher.salutation == Salutation.FRAU.value)
        q = q.filter(or_(*clauses))
    if gender == Gender.MALE:
        q = q.filter(Teacher.salutation == Salutation.HERR.value)
    elif gender == Gender.FEMALE:
        q = q.filter(Teacher.salutation == Salutation.FRAU.value)
    rows = q.order_by(Teacher.last_name).limit(SEARCH_LIMIT).all()
    return [serialize_teacher(t) for t in rows]
