"""
survey_service.py — Multiple-choice survey questions and answers

Business Rules:
- One answer per (user, question); answering again replaces the choice
- Only active questions accept answers; the option must belong to the question
- Answering the last open active question logs a COMPLETE activity
- Updating a question with an options list replaces all options and
  therefore drops the answers given to the old ones
- Percentages are rounded to one decimal

Called by: routers/survey.py
Depends on: models, services/audit_service, services/student_activity_service
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..constants import AuditAction, Role, StudentAction
from ..models import SurveyAnswer, SurveyOption, SurveyQuestion, User
from ..utils.percentages import percentage
from .audit_service import log_admin_action
from .ordering import apply_reorder, next_order
from .student_activity_service import log_student_activity

log = logging.getLogger(__name__)

MSG_QUESTION_NOT_FOUND = "Frage nicht gefunden."


def _err(msg: str, status: int = 400) -> dict:
    return {"error": msg, "status": status}


def serialize_question(q: SurveyQuestion) -> dict:
    return {
        "id": q.id,
        "text": q.text,
        "order": q.order,
        "active": q.active,
        "options": [{"id": o.id, "text": o.text, "order": o.order} for o in q.options],
    }


def _active_questions(db: Session) -> list[SurveyQuestion]:
    return (
        db.query(SurveyQuestion)
        .filter(SurveyQuestion.active.is_(True))
        .order_by(SurveyQuestion.order, SurveyQuestion.id)
        .all()
    )


# ── Student side ─────────────────────────────────────────────────────


def student_survey(db: Session, user: User) -> dict:
    questions = _active_questions(db)
    answers = dict(
        db.query(SurveyAnswer.question_id, SurveyAnswer.option_id).filter(SurveyAnswer.user_id == user.id).all()
    )
    return {
        "questions": [{**serialize_question(q), "selected_option_id": answers.get(q.id)} for q in questions],
        "answered": sum(1 for q in questions if q.id in answers),
        "total": len(questions),
    }


def answer_question(db: Session, user: User, question_id: int, option_id: int) -> dict:
    question = db.get(SurveyQuestion, question_id)
    if not question:
        return _err(MSG_QUESTION_NOT_FOUND, 404)
    if not question.active:
        return _err("Diese Frage ist nicht mehr aktiv.")
    option = db.get(SurveyOption, option_id)
    if not option:
        return _err("Antwort nicht gefunden.", 404)
    if option.question_id != question.id:
        return _err("Antwort gehört nicht zu dieser Frage.")

    active_ids = [q.id for q in _active_questions(db)]
    answered_before = {
        qid
        for (qid,) in db.query(SurveyAnswer.question_id)
        .filter(SurveyAnswer.user_id == user.id, SurveyAnswer.question_id.in_(active_ids))
        .all()
    }

    answer = (
        db.query(SurveyAnswer)
        .filter(SurveyAnswer.user_id == user.id, SurveyAnswer.question_id == question.id)
        .first()
    )
    if answer:
        answer.option_id = option.id
    else:
        db.add(SurveyAnswer(user_id=user.id, question_id=question.id, option_id=option.id))
    db.commit()

    completed_now = question.id not in answered_before and len(answered_before) + 1 == len(active_ids)
    if completed_now:
        log_student_activity(db, user.id, StudentAction.COMPLETE, "Survey")
    return {"message": "Antwort gespeichert.", "question_id": question.id, "option_id": option.id}


# ── Admin side ───────────────────────────────────────────────────────


def admin_list(db: Session) -> list[dict]:
    questions = db.query(SurveyQuestion).order_by(SurveyQuestion.order, SurveyQuestion.id).all()
    counts = dict(
        db.query(SurveyAnswer.question_id, func.count(SurveyAnswer.id)).group_by(SurveyAnswer.question_id).all()
    )
    return [{**serialize_question(q), "answer_count": counts.get(q.id, 0)} for q in questions]


def _set_options(question: SurveyQuestion, options: list[str]) -> None:
    question.options.clear()
    for i, text in enumerate(options):
        question.options.append(SurveyOption(text=text.strip(), order=i))


def create_question(db: Session, text: str, options: list[str], alias: str | None) -> dict:
    question = SurveyQuestion(text=text.strip(), order=next_order(db, SurveyQuestion), active=True)
    _set_options(question, options)
    db.add(question)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.CREATE,
        entity="SurveyQuestion",
        entity_id=question.id,
        entity_name=question.text,
        new_values={"text": question.text, "options": [o.text for o in question.options]},
    )
    return {"message": "Frage erfolgreich erstellt.", "question": serialize_question(question)}


def update_question(db: Session, question_id: int, data: dict, alias: str | None) -> dict:
    question = db.get(SurveyQuestion, question_id)
    if not question:
        return _err(MSG_QUESTION_NOT_FOUND, 404)
    old = {"text": question.text, "active": question.active, "options": [o.text for o in question.options]}
    if data.get("text") is not None:
        question.text = data["text"].strip()
    if data.get("active") is not None:
        question.active = data["active"]
    if data.get("options") is not None:
        db.query(SurveyAnswer).filter(SurveyAnswer.question_id == question.id).delete(synchronize_session=False)
        _set_options(question, data["options"])
    db.commit()
    db.refresh(question)
    new = {"text": question.text, "active": question.active, "options": [o.text for o in question.options]}
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.UPDATE,
        entity="SurveyQuestion",
        entity_id=question.id,
        entity_name=question.text,
        old_values={k: v for k, v in old.items() if new[k] != v},
        new_values={k: v for k, v in new.items() if old[k] != v},
    )
    return {"message": "Frage erfolgreich aktualisiert.", "question": serialize_question(question)}


def delete_question(db: Session, question_id: int, alias: str | None) -> dict:
    question = db.get(SurveyQuestion, question_id)
    if not question:
        return _err(MSG_QUESTION_NOT_FOUND, 404)
    text = question.text
    db.delete(question)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.DELETE,
        entity="SurveyQuestion",
        entity_id=question_id,
        entity_name=text,
        old_values={"text": text},
    )
    return {"message": "Frage gelöscht."}


def reorder_questions(db: Session, orders: list[dict], alias: str | None) -> dict:
    updated = apply_reorder(db, SurveyQuestion, orders)
    db.commit()
    log_admin_action(
        db,
        alias=alias,
        action=AuditAction.REORDER,
        entity="SurveyQuestion",
        new_values={"count": updated},
    )
    return {"message": "Reihenfolge erfolgreich aktualisiert.", "updated": updated}


def stats(db: Session) -> dict:
    questions = _active_questions(db)
    total_students = (
        db.query(func.count(User.id)).filter(User.role == Role.STUDENT.value, User.active.is_(True)).scalar()
    )
    participating = db.query(func.count(func.distinct(SurveyAnswer.user_id))).scalar() or 0
    counts = {
        (qid, oid): n
        for qid, oid, n in db.query(SurveyAnswer.question_id, SurveyAnswer.option_id, func.count(SurveyAnswer.id))
        .group_by(SurveyAnswer.question_id, SurveyAnswer.option_id)
        .all()
    }
    out = []
    for q in questions:
        total = sum(counts.get((q.id, o.id), 0) for o in q.options)
        out.append({
            "id": q.id,
            "text": q.text,
            "total_answers": total,
            "options": [
                {
                    "id": o.id,
                    "text": o.text,
                    "count": counts.get((q.id, o.id), 0),
                    "percentage": percentage(counts.get((q.id, o.id), 0), total),
                }
                for o in q.options
            ],
        })
    return {
        "total_students": total_students,
        "participating_students": participating,
        "participation_rate": percentage(participating, total_students),
        "questions": out,
    }
